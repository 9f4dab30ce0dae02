"""
Persistence Tests

Versioned rehydration, saving, clearing and the bundled adapters.
"""

import asyncio
import json

import pytest

from statekit import (
    AsyncData, AsyncLoading, Event, LocalFileAdapter, MemoryAdapter,
    PersistenceAdapter, PersistenceConfigurationError, PersistenceLoadAttemptEffect,
    PersistenceLoadSuccessEffect, PersistenceSaveAttemptEffect,
    PersistenceSaveSuccessEffect, PersistentCore,
)


class Renamed(Event):
    name: str


def settings_from_json(data):
    return dict(data)


def settings_to_json(state):
    return dict(state)


class SettingsCore(PersistentCore[Event, dict]):
    """Persisted user settings"""

    def __init__(self, adapter=None, version=1, **kwargs):
        super().__init__(
            lambda: {"name": "anonymous"},
            adapter=adapter,
            from_json=settings_from_json,
            to_json=settings_to_json,
            version=version,
            **kwargs,
        )
        self.on(Renamed, self._on_renamed)

    def _on_renamed(self, event: Renamed):
        self.update_state(AsyncData({**self.state.value, "name": event.name}))


class UnreadableAdapter(PersistenceAdapter):
    """Storage whose reads always fail"""

    def __init__(self):
        self.saved = []

    async def load(self):
        raise OSError("disk gone")

    async def save(self, json):
        self.saved.append(json)

    async def clear(self):
        pass


class SlowFirstSaveAdapter(PersistenceAdapter):
    """Holds its first save until `release` is set and tracks overlapping saves"""

    def __init__(self):
        self.saved = []
        self.release = asyncio.Event()
        self.active = 0
        self.max_active = 0
        self._calls = 0

    async def load(self):
        return None

    async def save(self, json):
        self._calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        if self._calls == 1:
            await self.release.wait()
        self.saved.append(json)
        self.active -= 1

    async def clear(self):
        pass


async def settle():
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def store():
    return {}


@pytest.fixture
def adapter(store, registry):
    return MemoryAdapter("settings", store=store, registry=registry)


class TestRehydration:

    @pytest.mark.asyncio
    async def test_matching_version_restores_state(self, locator, adapter, store):
        store["settings"] = {"@version": 1, "data": {"name": "ada"}}
        core = SettingsCore(adapter)
        assert core.state == AsyncLoading()

        await core.ready()

        assert core.state == AsyncData({"name": "ada"})
        core.dispose()

    @pytest.mark.asyncio
    async def test_version_mismatch_resets(self, locator, adapter, store, caplog):
        store["settings"] = {"@version": 2, "data": {"name": "ada"}}
        core = SettingsCore(adapter, version=1)

        await core.ready()

        assert core.state == AsyncData({"name": "anonymous"})
        assert "State version mismatch for SettingsCore" in caplog.text
        core.dispose()

    @pytest.mark.asyncio
    async def test_missing_version_counts_as_zero(self, locator, adapter, store):
        store["settings"] = {"data": {"name": "ada"}}
        core = SettingsCore(adapter, version=0)
        await core.ready()
        assert core.state == AsyncData({"name": "ada"})
        core.dispose()

    @pytest.mark.asyncio
    async def test_nothing_stored_uses_initial_state(self, locator, adapter):
        core = SettingsCore(adapter)
        await core.ready()
        assert core.state == AsyncData({"name": "anonymous"})
        core.dispose()

    @pytest.mark.asyncio
    async def test_malformed_document_resets(self, locator, adapter, store):
        store["settings"] = {"@version": 1}
        core = SettingsCore(adapter)
        await core.ready()
        assert core.state == AsyncData({"name": "anonymous"})
        core.dispose()

    @pytest.mark.asyncio
    async def test_failed_load_resets_and_reports(self, locator, recorder):
        adapter = UnreadableAdapter()
        core = SettingsCore(adapter)

        await core.ready()

        assert core.state == AsyncData({"name": "anonymous"})
        errors = recorder.of_kind("error")
        assert len(errors) == 1
        assert errors[0][1] is core
        assert isinstance(errors[0][2], OSError)
        await core.flush()
        assert adapter.saved == [{"@version": 1, "data": {"name": "anonymous"}}]
        core.dispose()

    def test_without_adapter_starts_with_initial_state(self, locator):
        core = SettingsCore()
        assert core.state == AsyncData({"name": "anonymous"})
        core.dispose()

    def test_adapter_requires_serializers(self, locator, adapter):
        with pytest.raises(PersistenceConfigurationError):
            PersistentCore(dict, adapter=adapter, from_json=settings_from_json)
        with pytest.raises(PersistenceConfigurationError):
            PersistentCore(dict, adapter=adapter, to_json=settings_to_json)


class TestSaving:

    @pytest.mark.asyncio
    async def test_update_saves_versioned_document(self, locator, adapter, store):
        core = SettingsCore(adapter, version=3)
        await core.ready()

        core.add(Renamed(name="grace"))
        await settle()

        assert store["settings"] == {"@version": 3, "data": {"name": "grace"}}
        core.dispose()

    @pytest.mark.asyncio
    async def test_state_survives_restart(self, locator, registry, store):
        first = SettingsCore(MemoryAdapter("settings", store=store, registry=registry))
        await first.ready()
        first.add(Renamed(name="linus"))
        await settle()
        first.dispose()

        second = SettingsCore(MemoryAdapter("settings", store=store, registry=registry))
        await second.ready()
        assert second.state == AsyncData({"name": "linus"})
        second.dispose()

    @pytest.mark.asyncio
    async def test_dispose_keeps_the_last_save(self, locator, adapter, store):
        core = SettingsCore(adapter)
        await core.ready()

        core.add(Renamed(name="bob"))
        core.dispose()
        await core.flush()

        assert store["settings"] == {"@version": 1, "data": {"name": "bob"}}

    @pytest.mark.asyncio
    async def test_saves_run_one_at_a_time_and_newest_wins(self, locator):
        adapter = SlowFirstSaveAdapter()
        core = SettingsCore(adapter)
        await core.ready()

        core.add(Renamed(name="a"))
        core.add(Renamed(name="b"))
        adapter.release.set()
        await core.flush()

        names = [document["data"]["name"] for document in adapter.saved]
        assert names[-1] == "b"
        assert "a" not in names
        assert adapter.max_active == 1
        core.dispose()

    @pytest.mark.asyncio
    async def test_loading_states_are_not_saved(self, locator, adapter, store):
        core = SettingsCore(adapter)
        await core.ready()
        await settle()
        store.clear()

        core.update_state(AsyncLoading())
        await settle()

        assert store == {}
        core.dispose()

    @pytest.mark.asyncio
    async def test_clear_removes_document_and_resets(self, locator, adapter, store):
        core = SettingsCore(adapter)
        await core.ready()
        core.add(Renamed(name="ada"))
        await settle()

        await core.clear()
        await settle()

        assert core.state == AsyncData({"name": "anonymous"})
        assert store["settings"]["data"] == {"name": "anonymous"}
        core.dispose()


class TestMemoryAdapter:

    @pytest.mark.asyncio
    async def test_reports_attempt_and_success(self, adapter, recorder):
        await adapter.save({"@version": 1, "data": {}})
        await adapter.load()

        effects = [call[2] for call in recorder.of_kind("effect")]
        assert [type(effect) for effect in effects] == [
            PersistenceSaveAttemptEffect, PersistenceSaveSuccessEffect,
            PersistenceLoadAttemptEffect, PersistenceLoadSuccessEffect,
        ]
        assert all(call[1] is MemoryAdapter for call in recorder.of_kind("effect"))
        assert effects[0].adapter_name == "MemoryAdapter"
        assert effects[0].operation_key == "settings"
        assert effects[3].data == {"@version": 1, "data": {}}

    @pytest.mark.asyncio
    async def test_saved_document_is_copied(self, adapter):
        document = {"data": {"items": [1]}}
        await adapter.save(document)
        document["data"]["items"].append(2)

        loaded = await adapter.load()
        assert loaded == {"data": {"items": [1]}}

    @pytest.mark.asyncio
    async def test_clear(self, adapter):
        await adapter.save({"data": 1})
        await adapter.clear()
        assert await adapter.load() is None


class TestLocalFileAdapter:

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path, registry):
        adapter = LocalFileAdapter(tmp_path / "nested" / "state.json", registry=registry)
        await adapter.save({"@version": 1, "data": {"count": 2}})

        assert json.loads((tmp_path / "nested" / "state.json").read_text()) == {
            "@version": 1, "data": {"count": 2}
        }
        assert await adapter.load() == {"@version": 1, "data": {"count": 2}}

    @pytest.mark.asyncio
    async def test_missing_and_empty_files_load_as_none(self, tmp_path, registry):
        adapter = LocalFileAdapter(tmp_path / "state.json", registry=registry)
        assert await adapter.load() is None
        adapter.path.write_text("  \n")
        assert await adapter.load() is None

    @pytest.mark.asyncio
    async def test_unreadable_file_is_reported(self, tmp_path, registry, recorder):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]")
        adapter = LocalFileAdapter(path, registry=registry)

        assert await adapter.load() is None

        errors = recorder.of_kind("error")
        assert len(errors) == 1
        assert errors[0][1] is adapter
        assert isinstance(errors[0][2], ValueError)

    @pytest.mark.asyncio
    async def test_clear_deletes_file(self, tmp_path, registry):
        path = tmp_path / "state.json"
        adapter = LocalFileAdapter(path, registry=registry)
        await adapter.save({"data": 1})
        await adapter.clear()
        assert not path.exists()
        await adapter.clear()

    @pytest.mark.asyncio
    async def test_persistent_core_with_file(self, locator, tmp_path, registry):
        path = tmp_path / "settings.json"

        async def wait_for(text):
            for _ in range(100):
                if path.exists() and text in path.read_text():
                    return
                await asyncio.sleep(0.01)
            raise AssertionError(f"{text} never written to {path}")

        core = SettingsCore(LocalFileAdapter(path, registry=registry))
        await core.ready()
        await wait_for('"anonymous"')
        core.add(Renamed(name="file"))
        await wait_for('"file"')
        core.dispose()

        restored = SettingsCore(LocalFileAdapter(path, registry=registry))
        await restored.ready()
        assert restored.state == AsyncData({"name": "file"})
        restored.dispose()
