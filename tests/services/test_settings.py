from testfairyuploader.services.settings import SettingsStore


def test_settings_default_to_tool_names(tmp_path):
    store = SettingsStore(str(tmp_path / "settings.yml"))

    environment = store.get_environment()

    assert environment.jarsigner_path == "jarsigner"
    assert environment.zipalign_path == "zipalign"


def test_settings_save_and_reload(tmp_path):
    settings_file = tmp_path / "nested" / "settings.yml"
    store = SettingsStore(str(settings_file))

    store.save(jarsigner_path="/opt/jdk/bin/jarsigner", zipalign_path=None)
    store.save(jarsigner_path=None, zipalign_path="/opt/sdk/zipalign")

    environment = SettingsStore(str(settings_file)).get_environment()
    assert environment.jarsigner_path == "/opt/jdk/bin/jarsigner"
    assert environment.zipalign_path == "/opt/sdk/zipalign"


def test_settings_file_env_override(tmp_path, monkeypatch):
    settings_file = tmp_path / "custom.yml"
    settings_file.write_text("zipalign_path: /sdk/zipalign\n", encoding="utf-8")
    monkeypatch.setenv("TESTFAIRY_SETTINGS_FILE", str(settings_file))

    assert SettingsStore().get_environment().zipalign_path == "/sdk/zipalign"


def test_settings_store_signing_algorithms(tmp_path):
    settings_file = tmp_path / "settings.yml"
    store = SettingsStore(str(settings_file))

    store.save(jarsigner_path=None, zipalign_path=None, sigalg="SHA256withRSA", digestalg="SHA-256")
    environment = store.get_environment()
    assert environment.sigalg == "SHA256withRSA"
    assert environment.digestalg == "SHA-256"

    store.save(jarsigner_path=None, zipalign_path=None, sigalg="")
    environment = store.get_environment()
    assert environment.sigalg == ""
    assert environment.digestalg == "SHA-256"
