from database import Settings


def test_settings_read_the_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("ADMIN_TOKEN=from-file\nPLAN_ITERATION_CAP=12\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("ADMIN_TOKEN", raising=False)
    monkeypatch.delenv("PLAN_ITERATION_CAP", raising=False)

    settings = Settings()

    assert settings.admin_token == "from-file"
    assert settings.plan_iteration_cap == 12
    assert settings.pairing_trials == 100


def test_environment_overrides_the_env_file(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("PAIRING_TRIALS=150\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PAIRING_TRIALS", "250")

    assert Settings().pairing_trials == 250
