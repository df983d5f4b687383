import newsdesk.config as config


def test_parse_cors_allow_origins_from_string() -> None:
    out = config.Settings._parse_cors_allow_origins("http://a.com， http://b.com, ,http://a.com")
    assert out == ["http://a.com", "http://b.com", "http://a.com"]
    assert config.Settings._parse_cors_allow_origins(["http://x"]) == ["http://x"]


def test_strip_site_url() -> None:
    assert config.Settings._strip_site_url("https://news.example.com/") == "https://news.example.com"
    assert config.Settings._strip_site_url("https://news.example.com") == "https://news.example.com"


def test_parse_scheduler_enabled() -> None:
    assert config.Settings._parse_scheduler_enabled("yes") is True
    assert config.Settings._parse_scheduler_enabled(" ON ") is True
    assert config.Settings._parse_scheduler_enabled("0") is False
    assert config.Settings._parse_scheduler_enabled("") is False
    assert config.Settings._parse_scheduler_enabled(1) is True


def test_parse_debug_variants(monkeypatch) -> None:
    monkeypatch.setattr(config, "_running_tests", lambda: False, raising=True)
    assert config.Settings._parse_debug(None) is False
    assert config.Settings._parse_debug(True) is True
    assert config.Settings._parse_debug(0) is False
    assert config.Settings._parse_debug(1) is True
    assert config.Settings._parse_debug("0") is False
    assert config.Settings._parse_debug("false") is False
    assert config.Settings._parse_debug("") is False
    assert config.Settings._parse_debug("maybe") is True


def test_validate_security_raises_when_debug_false_insecure_secret(monkeypatch) -> None:
    monkeypatch.setattr(config, "_running_tests", lambda: False, raising=True)
    monkeypatch.setenv("SECRET_KEY", "your-super-secret-key-change-in-production")

    try:
        config.Settings(debug=False)
        assert False, "expected ValueError"
    except ValueError as e:
        assert "SECRET_KEY" in str(e)


def test_validate_security_accepts_long_secret(monkeypatch) -> None:
    monkeypatch.setattr(config, "_running_tests", lambda: False, raising=True)
    monkeypatch.setenv("JWT_SECRET_KEY", "x" * 40)
    monkeypatch.delenv("SECRET_KEY", raising=False)

    s = config.Settings(debug=False)
    assert s.secret_key == "x" * 40


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("SITE_URL", "https://daily.example.com/")
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example.com,https://b.example.com")
    monkeypatch.setenv("RSS_SCHEDULER_ENABLED", "true")
    monkeypatch.setenv("RSS_FETCH_TIMEOUT_SECONDS", "5")

    s = config.Settings()
    assert s.site_url == "https://daily.example.com"
    assert s.cors_allow_origins == ["https://a.example.com", "https://b.example.com"]
    assert s.rss_scheduler_enabled is True
    assert s.rss_fetch_timeout_seconds == 5.0
