"""
Unit tests for desired state recording.
"""
from pathlib import Path
import pytest
import yaml
from kdesc.PARSERS.manifest_parser import ManifestParser
from kdesc.MANAGERS.desired_state import DesiredStateStore
from kdesc.MANAGERS.apply_manager import ApplyManager, ChangeAction
from kdesc.MODELS.settings import Settings
from kdesc.errors import ManifestValidationError, StateStoreError

GEOIP_MANIFEST = Path(__file__).resolve().parents[2] / "manifests" / "geoip.yaml"
KEYS = ["Deployment/default/geoip", "Service/default/geoip", "Ingress/default/geoip"]


@pytest.fixture
def manifest():
    return ManifestParser(context={}).parse(str(GEOIP_MANIFEST))


@pytest.fixture
def manifest_text():
    return GEOIP_MANIFEST.read_text()


class TestApplyManager:
    """Tests for ApplyManager."""

    def test_first_apply_creates(self, manifest):
        store = DesiredStateStore()
        result = ApplyManager(store).apply(manifest)
        assert [c.key for c in result.changes] == KEYS
        assert result.by_action(ChangeAction.CREATED) == KEYS
        assert store.list() == sorted(KEYS)
        assert result.changed

    def test_reapply_is_idempotent(self, manifest):
        store = DesiredStateStore()
        manager = ApplyManager(store)
        manager.apply(manifest)
        before = dict(store.records)

        result = manager.apply(manifest)
        assert result.by_action(ChangeAction.UNCHANGED) == KEYS
        assert not result.changed
        assert store.records == before
        assert len(store) == 3

    def test_changed_field_is_reported(self, manifest, manifest_text):
        store = DesiredStateStore()
        manager = ApplyManager(store)
        manager.apply(manifest)

        scaled = ManifestParser(context={}).parse_from_string(manifest_text.replace("replicas: 1", "replicas: 3"))
        result = manager.apply(scaled)
        change = result.changes[0]
        assert change.key == "Deployment/default/geoip"
        assert change.action == ChangeAction.CONFIGURED
        assert change.changed_fields == ["spec.replicas"]
        assert result.by_action(ChangeAction.UNCHANGED) == KEYS[1:]
        assert store.get("Deployment/default/geoip")["spec"]["replicas"] == 3

    def test_dry_run_records_nothing(self, manifest):
        store = DesiredStateStore()
        result = ApplyManager(store).apply(manifest, dry_run=True)
        assert result.dry_run
        assert result.by_action(ChangeAction.CREATED) == KEYS
        assert len(store) == 0

    def test_invalid_manifest_is_rejected(self, manifest_text):
        broken = ManifestParser(context={}).parse_from_string(manifest_text.replace("name: web\n", "name: http\n", 1))
        store = DesiredStateStore()
        with pytest.raises(ManifestValidationError) as exc:
            ApplyManager(store).apply(broken)
        assert not exc.value.report.ok
        assert len(store) == 0

    def test_strict_rejects_placeholders(self, manifest):
        with pytest.raises(ManifestValidationError):
            ApplyManager(DesiredStateStore(), Settings(strict=True)).apply(manifest)

    def test_delete(self, manifest):
        store = DesiredStateStore()
        manager = ApplyManager(store)
        manager.apply(manifest)

        result = manager.delete(manifest)
        assert [c.key for c in result.changes] == list(reversed(KEYS))
        assert result.by_action(ChangeAction.DELETED) == list(reversed(KEYS))
        assert len(store) == 0

        again = manager.delete(manifest)
        assert again.by_action(ChangeAction.NOT_FOUND) == list(reversed(KEYS))
        assert not again.changed


class TestDesiredStateStore:
    """Tests for DesiredStateStore persistence."""

    def test_persist_and_reload(self, manifest, tmp_path):
        path = tmp_path / "state" / "state.yaml"
        ApplyManager(DesiredStateStore(str(path))).apply(manifest)
        assert path.exists()

        reloaded = DesiredStateStore(str(path)).load()
        assert reloaded.list() == sorted(KEYS)
        result = ApplyManager(reloaded).apply(manifest)
        assert result.by_action(ChangeAction.UNCHANGED) == KEYS

    def test_missing_file_is_empty(self, tmp_path):
        assert len(DesiredStateStore(str(tmp_path / "none.yaml")).load()) == 0

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "state.yaml"
        path.write_text("resources: [1, 2]\n")
        with pytest.raises(StateStoreError):
            DesiredStateStore(str(path)).load()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "state.yaml"
        path.write_text("resources: {unclosed\n")
        with pytest.raises(StateStoreError):
            DesiredStateStore(str(path)).load()

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "state.yaml"
        path.write_bytes(b"resources: {caf\xe9: {}}\n")
        with pytest.raises(StateStoreError):
            DesiredStateStore(str(path)).load()
        with pytest.raises(StateStoreError):
            DesiredStateStore(str(tmp_path)).load()

    @pytest.mark.parametrize("content", [
        "resources: {bogus: {}}\n",
        "resources: {Service/geoip: {}}\n",
        "resources: {Service//geoip: {}}\n",
        "resources: {Service/default/geoip: [1]}\n",
    ])
    def test_invalid_record(self, tmp_path, content):
        path = tmp_path / "state.yaml"
        path.write_text(content)
        with pytest.raises(StateStoreError):
            DesiredStateStore(str(path)).load()

    def test_remove(self):
        store = DesiredStateStore()
        store.put("Service/default/geoip", {"kind": "Service"})
        assert "Service/default/geoip" in store
        assert store.remove("Service/default/geoip")
        assert not store.remove("Service/default/geoip")

    def test_saved_document_shape(self, manifest, tmp_path):
        path = tmp_path / "state.yaml"
        ApplyManager(DesiredStateStore(str(path))).apply(manifest)
        data = yaml.safe_load(path.read_text())
        record = data["resources"]["Service/default/geoip"]
        assert record["apiVersion"] == "v1"
        assert record["kind"] == "Service"
        assert record["spec"]["ports"][0]["name"] == "web"
