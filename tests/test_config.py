import httpx
import pytest

from syncwatch.adapters.syncthing.client import SyncthingClient
from syncwatch.adapters.syncthing.discovery import GuiSettings
from syncwatch.config import WatcherConfig
from syncwatch.core.accumulator import AccumulatorSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("FOLDERS", "SKIP_FOLDERS", "TARGET", "API_KEY", "USER", "PASSWORD", "CSRF_FILE"):
        monkeypatch.delenv(f"SYNCWATCH_{name}", raising=False)


@pytest.mark.fast
class TestWatcherConfig:

    def test_defaults_match_accumulator_defaults(self):
        assert WatcherConfig().accumulator_settings() == AccumulatorSettings()

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_FOLDERS", "default, photos,")
        monkeypatch.setenv("SYNCWATCH_DIR_VS_FILES", "12")

        config = WatcherConfig()

        assert config.watch_folders == ["default", "photos"]
        assert config.skip_folders == []
        assert config.accumulator_settings().dir_vs_files == 12

    def test_folder_lists_are_exclusive(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_FOLDERS", "a")
        monkeypatch.setenv("SYNCWATCH_SKIP_FOLDERS", "b")
        with pytest.raises(ValueError):
            WatcherConfig()

    def test_invalid_threshold_rejected(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_DIR_VS_FILES", "0")
        with pytest.raises(ValueError):
            WatcherConfig()

    def test_public_dict_hides_secrets(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_API_KEY", "very-secret")
        public = WatcherConfig().to_dict_public()

        assert "API_KEY" not in public
        assert "PASSWORD" not in public
        assert "very-secret" not in str(public)

    def test_target_falls_back_to_gui_settings(self):
        gui = GuiSettings(address="127.0.0.1:8385", tls=True, api_key="from-xml", user="admin")
        config = WatcherConfig()

        assert config.resolve_target(gui) == "https://127.0.0.1:8385"
        assert config.resolve_api_key(gui) == "from-xml"
        assert config.resolve_user(gui) == "admin"

    def test_explicit_values_win(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_TARGET", "box:9000/")
        monkeypatch.setenv("SYNCWATCH_API_KEY", "from-env")
        gui = GuiSettings(api_key="from-xml")
        config = WatcherConfig()

        assert config.resolve_target(gui) == "http://box:9000"
        assert config.resolve_api_key(gui) == "from-env"

    def test_csrf_token_is_last_line(self, tmp_path, monkeypatch):
        csrf = tmp_path / "csrftokens.txt"
        csrf.write_text("old-token\nnew-token\n\n")
        monkeypatch.setenv("SYNCWATCH_CSRF_FILE", str(csrf))

        assert WatcherConfig().csrf_token() == "new-token"

    def test_no_csrf_file(self):
        assert WatcherConfig().csrf_token() == ""

    @pytest.mark.asyncio
    async def test_client_from_config(self, monkeypatch):
        monkeypatch.setenv("SYNCWATCH_PASSWORD", "pw")
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ping": "pong"})

        gui = GuiSettings(address="localhost:8384", api_key="k", user="admin")
        async with SyncthingClient.from_config(WatcherConfig(), gui, httpx.MockTransport(handler)) as client:
            await client.ping()

        assert client.base_url == "http://localhost:8384"
        assert seen[0].headers["X-API-Key"] == "k"
        assert seen[0].headers["Authorization"].startswith("Basic ")
