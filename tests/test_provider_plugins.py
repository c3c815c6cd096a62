import pytest

from effect_engine.providers import plugins
from effect_engine.providers.base import StaticEffectProvider, make_effects


@pytest.fixture(autouse=True)
def clean_plugins():
    plugins.reset_plugins()
    yield
    plugins.reset_plugins()


class _FakeEntryPoint:
    def __init__(self, name, loaded=None, error=None):
        self.name = name
        self._loaded = loaded
        self._error = error

    def load(self):
        if self._error is not None:
            raise self._error
        return self._loaded


class _FakeEntryPoints:
    def __init__(self, entries):
        self._entries = entries

    def select(self, group):
        assert group == "effect_engine.providers"
        return list(self._entries)


def _provider(source_id):
    return StaticEffectProvider(source_id, make_effects([("health_regen", 1.0)]))


def test_manual_registration_and_overrides(monkeypatch):
    monkeypatch.setattr(plugins.metadata, "entry_points", lambda: _FakeEntryPoints([]))
    plugins.register_provider_plugins([_provider("a"), _provider("b")])
    override = _provider("b")
    found = plugins.discover_providers({"b": override})
    assert set(found) == {"a", "b"}
    assert found["b"] is override


def test_entry_points_accept_objects_factories_and_collections(monkeypatch):
    entries = [
        _FakeEntryPoint("single", _provider("single")),
        _FakeEntryPoint("factory", lambda: [_provider("made")]),
        _FakeEntryPoint("mapping", {"x": _provider("mapped")}),
        _FakeEntryPoint("broken", error=ImportError("missing dependency")),
    ]
    monkeypatch.setattr(plugins.metadata, "entry_points", lambda: _FakeEntryPoints(entries))
    found = plugins.discover_providers()
    assert set(found) == {"single", "made", "mapped"}


def test_entry_points_are_loaded_once(monkeypatch):
    calls = []

    def entry_points():
        calls.append(1)
        return _FakeEntryPoints([])

    monkeypatch.setattr(plugins.metadata, "entry_points", entry_points)
    plugins.discover_providers()
    plugins.discover_providers()
    assert len(calls) == 1


def test_non_provider_entry_points_are_skipped(monkeypatch):
    entries = [
        _FakeEntryPoint("number", 42),
        _FakeEntryPoint("failing_factory", lambda: 1 / 0),
        _FakeEntryPoint("good", [_provider("good"), None]),
    ]
    monkeypatch.setattr(plugins.metadata, "entry_points", lambda: _FakeEntryPoints(entries))
    assert set(plugins.discover_providers()) == {"good"}


def test_manual_registration_rejects_non_providers():
    with pytest.raises(TypeError):
        plugins.register_provider_plugin(object())


def test_reset_forgets_manual_and_discovered(monkeypatch):
    entries = [_FakeEntryPoint("single", _provider("single"))]
    monkeypatch.setattr(plugins.metadata, "entry_points", lambda: _FakeEntryPoints(entries))
    plugins.register_provider_plugin(_provider("manual"))
    assert set(plugins.discover_providers()) == {"single", "manual"}

    plugins.reset_plugins()
    entries.clear()
    assert plugins.discover_providers() == {}
