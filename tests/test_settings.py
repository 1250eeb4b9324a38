from src.config.settings import Settings


CAMPUS_YAML = """
institution:
  name: Example Tech
  email_domain: example.edu
meetup_locations:
  - slug: quad
    label: The Quad
  - slug: library
"""


def test_load_reads_campus_yaml_and_env(tmp_path, monkeypatch):
    campus = tmp_path / "campus.yaml"
    campus.write_text(CAMPUS_YAML)
    env = tmp_path / ".env"
    env.write_text("DB_PATH=/tmp/test-market.db\nKV_TIMEOUT=2.5\n")
    # setenv first so teardown also removes what load_dotenv writes
    for name in ("INSTITUTION_DOMAIN", "DB_PATH", "KV_TIMEOUT"):
        monkeypatch.setenv(name, "placeholder")
        monkeypatch.delenv(name)

    settings = Settings.load(env_path=str(env), campus_path=str(campus))

    assert settings.institution_domain == "example.edu"
    assert settings.institution_name == "Example Tech"
    assert settings.email_suffix == "@example.edu"
    assert settings.db_path == "/tmp/test-market.db"
    assert settings.kv_timeout == 2.5
    assert settings.get_meetup_location("QUAD").label == "The Quad"
    assert settings.get_meetup_location("library").label == "library"
    assert settings.get_meetup_location("gym") is None


def test_env_overrides_campus_domain(tmp_path, monkeypatch):
    campus = tmp_path / "campus.yaml"
    campus.write_text(CAMPUS_YAML)
    monkeypatch.setenv("INSTITUTION_DOMAIN", "other.edu")

    settings = Settings.load(env_path=str(tmp_path / "missing.env"), campus_path=str(campus))
    assert settings.email_suffix == "@other.edu"


def test_missing_campus_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("INSTITUTION_DOMAIN", raising=False)
    settings = Settings.load(env_path=str(tmp_path / "missing.env"), campus_path=str(tmp_path / "none.yaml"))
    assert settings.institution_domain == "rit.edu"
    assert settings.meetup_locations == []


def test_validate_reports_problems():
    errors = Settings(index_rebuild_time="25:99", kv_timeout=0).validate()
    assert "SUPABASE_URL is required" in errors
    assert any("INDEX_REBUILD_TIME" in e for e in errors)
    assert "KV_TIMEOUT must be positive" in errors


def test_rebuild_schedule():
    assert Settings(index_rebuild_time="04:30").rebuild_schedule() == (4, 30)
    assert Settings(index_rebuild_time="").rebuild_schedule() is None


def test_valid_settings_have_no_errors():
    settings = Settings(
        supabase_url="https://x.supabase.co",
        supabase_anon_key="anon",
        supabase_service_role_key="service",
    )
    assert settings.validate() == []


def test_malformed_rebuild_time_disables_schedule():
    assert Settings(index_rebuild_time="3am").rebuild_schedule() is None
    assert Settings(index_rebuild_time="25:00").rebuild_schedule() is None
    assert Settings(index_rebuild_time="4:05").rebuild_schedule() == (4, 5)
