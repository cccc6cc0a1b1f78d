"""Tests for the gunicorn configuration file."""

import runpy
from pathlib import Path

CONF_PATH = Path(__file__).resolve().parent.parent / "gunicorn.conf.py"


class TestGunicornConf:
    """Tests for the settings gunicorn reads at start-up."""

    def test_wsgi_app_and_proxy_settings(self):
        """Test the app path and proxy flags are separate settings."""
        conf = runpy.run_path(str(CONF_PATH))
        assert conf["wsgi_app"] == "quantum5ocial.wsgi:application"
        assert conf["proxy_protocol"] is True
        assert conf["forwarded_allow_ips"] == "*"

    def test_workers_from_environment(self, monkeypatch):
        """Test GUNICORN_WORKERS overrides the worker count."""
        monkeypatch.setenv("GUNICORN_WORKERS", "3")
        conf = runpy.run_path(str(CONF_PATH))
        assert conf["workers"] == 3
