import pytest

from models import Need, NeedStatus, derive_status


@pytest.mark.parametrize(
    "pledged,quantity,expected",
    [
        (0, 10, NeedStatus.REQUESTED),
        (None, 10, NeedStatus.REQUESTED),
        (4, 10, NeedStatus.PARTIALLY_PLEDGED),
        (10, 10, NeedStatus.FULLY_PLEDGED),
        (12, 10, NeedStatus.FULLY_PLEDGED),
        (0, 0, NeedStatus.REQUESTED),
        (3, 0, NeedStatus.FULLY_PLEDGED),
        (3, None, NeedStatus.FULLY_PLEDGED),
    ],
)
def test_derive_status(pledged, quantity, expected):
    assert derive_status(pledged, quantity) == expected


def test_closed_need_reads_as_received():
    need = Need(
        item="Rice", category="Food", district="Galle", location="Town hall",
        contact_name="Nimal", contact_number="0771234567",
        quantity=10, pledged_amount=4, closed=True,
    )
    assert need.status == NeedStatus.RECEIVED

    need.closed = False
    assert need.status == NeedStatus.PARTIALLY_PLEDGED


def test_status_wire_values():
    assert [s.value for s in NeedStatus] == [
        "pending", "partially_pledged", "fully_pledged", "completed",
    ]
