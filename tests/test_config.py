"""Tests for rhtsupport_reporter.core.config — files, env overrides, defaults."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from rhtsupport_reporter.core.config import (
    DEFAULT_BIG_FILE_URL,
    DEFAULT_BIG_SIZE_MB,
    DEFAULT_URL,
    MicroreportConfig,
    ReporterConfig,
    load_conf_file,
    string_to_bool,
)
from rhtsupport_reporter.core.errors import ConfigError


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text)
    return path


# ── load_conf_file ────────────────────────────────────────────────────


class TestLoadConfFile:
    def test_parses_param_value_lines(self, tmp_path):
        path = _write(tmp_path, "a.conf", "URL = https://x\nLogin=joe\n")
        assert load_conf_file(path) == {"URL": "https://x", "Login": "joe"}

    def test_skips_comments_and_blank_lines(self, tmp_path):
        path = _write(tmp_path, "a.conf", "# comment\n\n   \nLogin = joe\n")
        assert load_conf_file(path) == {"Login": "joe"}

    def test_strips_quotes(self, tmp_path):
        path = _write(tmp_path, "a.conf", 'Password = "p a s s"\n')
        assert load_conf_file(path)["Password"] == "p a s s"

    def test_value_may_contain_equal_sign(self, tmp_path):
        path = _write(tmp_path, "a.conf", "URL = https://x/?a=b\n")
        assert load_conf_file(path)["URL"] == "https://x/?a=b"

    def test_ignores_lines_without_equal_sign(self, tmp_path):
        path = _write(tmp_path, "a.conf", "garbage\nLogin = joe\n")
        assert load_conf_file(path) == {"Login": "joe"}

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ConfigError):
            load_conf_file(tmp_path / "nope.conf")


class TestStringToBool:
    @pytest.mark.parametrize("value", ["1", "yes", "YES", "on", "true"])
    def test_true_values(self, value):
        assert string_to_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "no", "off", "False"])
    def test_false_values(self, value):
        assert string_to_bool(value) is False

    def test_garbage_raises(self):
        with pytest.raises(ConfigError):
            string_to_bool("maybe")


# ── ReporterConfig ────────────────────────────────────────────────────


class TestReporterConfig:
    @patch("rhtsupport_reporter.core.config.DEFAULT_CONF_FILE", Path("/nonexistent/rhtsupport.conf"))
    def test_defaults(self):
        cfg = ReporterConfig.load([], environ={})
        assert cfg.url == DEFAULT_URL
        assert cfg.login == ""
        assert cfg.password == ""
        assert cfg.big_file_url == DEFAULT_BIG_FILE_URL
        assert cfg.big_size_mb == DEFAULT_BIG_SIZE_MB
        assert cfg.ssl_verify is True
        assert cfg.submit_ureport is False

    def test_later_file_wins(self, tmp_path):
        a = _write(tmp_path, "a.conf", "Login = first\nURL = https://a\n")
        b = _write(tmp_path, "b.conf", "Login = second\n")
        cfg = ReporterConfig.load([a, b], environ={})
        assert cfg.login == "second"
        assert cfg.url == "https://a"

    def test_env_overrides_file(self, tmp_path):
        a = _write(tmp_path, "a.conf", "Login = file\nBigSizeMB = 10\n")
        cfg = ReporterConfig.load(
            [a], environ={"RHTSupport_Login": "env", "RHTSupport_BigSizeMB": "0"}
        )
        assert cfg.login == "env"
        assert cfg.big_size_mb == 0

    def test_ssl_verify_false(self, tmp_path):
        a = _write(tmp_path, "a.conf", "SSLVerify = no\n")
        assert ReporterConfig.load([a], environ={}).ssl_verify is False

    def test_negative_big_size_rejected(self, tmp_path):
        a = _write(tmp_path, "a.conf", "BigSizeMB = -5\n")
        with pytest.raises(ConfigError):
            ReporterConfig.load([a], environ={})

    def test_non_numeric_big_size_rejected(self, tmp_path):
        a = _write(tmp_path, "a.conf", "BigSizeMB = lots\n")
        with pytest.raises(ConfigError):
            ReporterConfig.load([a], environ={})

    def test_submit_ureport_follows_flag_when_unset(self, tmp_path):
        a = _write(tmp_path, "a.conf", "")
        assert ReporterConfig.load([a], environ={}, submit_ureport_flag=True).submit_ureport
        assert not ReporterConfig.load([a], environ={}).submit_ureport

    def test_submit_ureport_setting_beats_flag(self, tmp_path):
        a = _write(tmp_path, "a.conf", "SubmitUReport = no\n")
        cfg = ReporterConfig.load([a], environ={}, submit_ureport_flag=True)
        assert cfg.submit_ureport is False

    def test_explicit_missing_file_is_an_error(self, tmp_path):
        with pytest.raises(ConfigError):
            ReporterConfig.load([tmp_path / "missing.conf"], environ={})


# ── MicroreportConfig ─────────────────────────────────────────────────


class TestMicroreportConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = MicroreportConfig.load(tmp_path / "missing.conf", environ={})
        assert cfg.include_auth_data is True
        assert cfg.auth_data_items == []
        assert cfg.contact_email is None

    def test_reads_items_and_email(self, tmp_path):
        path = _write(
            tmp_path,
            "ureport.conf",
            "AuthDataItems = hostname, machineid\nContactEmail = a@b.c\n",
        )
        cfg = MicroreportConfig.load(path, environ={})
        assert cfg.auth_data_items == ["hostname", "machineid"]
        assert cfg.contact_email == "a@b.c"

    def test_auth_items_dropped_when_auth_excluded(self, tmp_path):
        path = _write(
            tmp_path, "ureport.conf", "IncludeAuthData = no\nAuthDataItems = hostname\n"
        )
        cfg = MicroreportConfig.load(path, environ={})
        assert cfg.include_auth_data is False
        assert cfg.auth_data_items == []

    def test_env_override(self, tmp_path):
        path = _write(tmp_path, "ureport.conf", "ContactEmail = file@x\n")
        cfg = MicroreportConfig.load(path, environ={"uReport_ContactEmail": "env@x"})
        assert cfg.contact_email == "env@x"
