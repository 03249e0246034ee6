import pytest

from services.registry import (
    OWNER,
    PLEDGER,
    PostRegistry,
    dump_registry,
    load_registry,
)


def test_record_deduplicates():
    registry = PostRegistry()
    registry.record("needs/1", OWNER)
    registry.record("needs/1", OWNER)
    registry.record("people/1", OWNER)

    assert registry.ids(OWNER) == ["needs/1", "people/1"]
    assert registry.changed


def test_roles_are_independent():
    registry = PostRegistry()
    registry.record("needs/3", PLEDGER)

    assert registry.contains("needs/3", PLEDGER)
    assert not registry.contains("needs/3", OWNER)


def test_forget_only_touches_owner_list():
    registry = PostRegistry(owner=["needs/1"], pledger=["needs/1"])
    assert not registry.changed

    registry.forget("needs/1")
    registry.forget("needs/2")

    assert registry.ids(OWNER) == []
    assert registry.ids(PLEDGER) == ["needs/1"]
    assert registry.changed


def test_unknown_role():
    with pytest.raises(ValueError):
        PostRegistry().record("needs/1", "admin")


def test_cookie_round_trip():
    registry = PostRegistry(owner=["needs/1", "volunteers/2"], pledger=["needs/5"])

    loaded = load_registry(dump_registry(registry))

    assert loaded.to_dict() == registry.to_dict()
    assert not loaded.changed


@pytest.mark.parametrize("token", [None, "", "garbage", "eyJvd25lciI6W119.tampered"])
def test_bad_cookie_gives_empty_registry(token):
    registry = load_registry(token)

    assert registry.to_dict() == {OWNER: [], PLEDGER: []}


def test_tampered_cookie_is_ignored():
    token = dump_registry(PostRegistry(owner=["needs/1"]))
    payload, signature = token.rsplit(".", 1)

    registry = load_registry(payload + "." + signature[::-1])

    assert registry.ids(OWNER) == []
