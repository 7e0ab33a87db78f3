"""Tests for the create_admin command-line script."""

import pytest

from app.config import get_config
from scripts import create_admin


@pytest.fixture(autouse=True)
def fresh_config(clean_env):
    clean_env.setenv("SESSION_SECRET", "script-secret")
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_creates_admin_and_lists_it(capsys):
    create_admin.main(["--username", "ops", "--password", "long-password", "--database-url", "sqlite://"])
    assert "✓ Created admin 'ops'" in capsys.readouterr().out

    create_admin.main(["--list", "--database-url", "sqlite://"])
    out = capsys.readouterr().out
    assert "ops" in out
    assert "Total admins: 1" in out


def test_duplicate_username_exits(capsys):
    args = ["--username", "ops", "--password", "long-password", "--database-url", "sqlite://"]
    create_admin.main(args)

    with pytest.raises(SystemExit) as exc_info:
        create_admin.main(args)

    assert exc_info.value.code == 1
    assert "already exists" in capsys.readouterr().out


def test_requires_database(capsys):
    with pytest.raises(SystemExit):
        create_admin.main(["--username", "ops", "--password", "long-password"])

    assert "No database configured" in capsys.readouterr().out
