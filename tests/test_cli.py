"""
Tests for the CLI commands — create-new, use-existing, teardown, slim-status.

Uses Click's CliRunner against the in-memory Pulp server, so commands run
end to end without a network.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest
import yaml
from click.testing import CliRunner

from fake_pulp import FakePulp
from pulp_slimmer.main import cli


# -- Fixtures -----------------------------------------------------------------

REPOS = {
    "pulp-base-os": {"url": "https://example/os", "rpms": ["bash", "glibc"]},
    "pulp-appstream": {"url": "https://example/app", "rpms": ["vim"]},
}


@pytest.fixture(autouse=True)
def _restore_logging():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _repos_file(tmp_path: Path, repos: dict = REPOS) -> Path:
    path = tmp_path / "repos_to_mirror.yaml"
    path.write_text(yaml.safe_dump(repos))
    return path


def _run(args: list, settings, transport: httpx.BaseTransport, env: dict | None = None):
    """Run a CLI command against the given transport."""
    runner = CliRunner()
    return runner.invoke(
        cli,
        args,
        obj={"settings": settings, "transport": transport},
        env=env,
        catch_exceptions=False,
    )


# -- create-new ---------------------------------------------------------------

class TestCreateNew:
    """Tests for the create-new command."""

    def test_creates_mirrors(self, tmp_path, settings, fake):
        fake.upstream["https://example/os"] = ["bash", "glibc"]
        fake.upstream["https://example/app"] = ["vim"]

        result = _run(["create-new", "-f", str(_repos_file(tmp_path))], settings, fake.transport)

        assert result.exit_code == 0
        assert "✓ pulp-base-os" in result.output
        assert "✓ pulp-appstream" in result.output
        assert sorted(d["name"] for d in fake.distributions.values()) == ["pulp-appstream", "pulp-base-os"]

    def test_writes_ledger(self, tmp_path, settings, fake):
        ledger = tmp_path / "state" / "runs.ndjson"

        result = _run(
            ["create-new", "-f", str(_repos_file(tmp_path)), "--ledger", str(ledger)],
            settings,
            fake.transport,
        )

        assert result.exit_code == 0
        events = [json.loads(line) for line in ledger.read_text().splitlines()]
        assert events[0]["type"] == "run_start"
        assert events[0]["run_id"].startswith("R-")

    def test_missing_repos_file(self, tmp_path, settings, fake):
        result = _run(["create-new", "-f", str(tmp_path / "nope.yaml")], settings, fake.transport)

        assert result.exit_code == 2
        assert "Could not find declared mirrors file" in result.output

    def test_invalid_repos_file(self, tmp_path, settings, fake):
        path = tmp_path / "repos.yaml"
        path.write_text("pulp-base-os:\n  rpms: [bash]\n")

        result = _run(["create-new", "-f", str(path)], settings, fake.transport)

        assert result.exit_code == 2
        assert fake.calls == []

    def test_service_error_exit_code(self, tmp_path, settings):
        """Test an unreachable or failing Pulp API exits with the service error code."""
        broken = httpx.MockTransport(lambda request: httpx.Response(500, text="Internal Server Error"))

        result = _run(["create-new", "-f", str(_repos_file(tmp_path))], settings, broken)

        assert result.exit_code == 5

    def test_workers_must_be_positive(self, tmp_path, settings, fake):
        result = _run(
            ["create-new", "-f", str(_repos_file(tmp_path)), "--workers", "0"],
            settings,
            fake.transport,
        )

        assert result.exit_code == 2


# -- use-existing -------------------------------------------------------------

class TestUseExisting:
    """Tests for the use-existing command."""

    def test_prints_slim_repo_urls(self, tmp_path, settings, fake):
        fake.seed_mirror("pulp-base-os", "https://example/os", ["bash", "glibc", "vim"])
        fake.seed_mirror("pulp-appstream", "https://example/app", ["vim", "emacs"])
        output = tmp_path / "_slim_repos.yaml"

        result = _run(
            ["use-existing", "-f", str(_repos_file(tmp_path)), "-l", "testbuild", "-o", str(output)],
            settings,
            fake.transport,
        )

        assert result.exit_code == 0
        assert "Slim repos:" in result.output
        assert "/pulp/content/testbuild-base-os/" in result.output
        assert "/pulp/content/testbuild-appstream/" in result.output
        assert sorted(yaml.safe_load(output.read_text())) == ["testbuild-appstream", "testbuild-base-os"]

    def test_missing_mirror_exit_code(self, tmp_path, settings, fake):
        """Test a missing distribution fails that repo and sets the exit code."""
        fake.seed_mirror("pulp-appstream", "https://example/app", ["vim"])
        output = tmp_path / "_slim_repos.yaml"

        result = _run(
            ["use-existing", "-f", str(_repos_file(tmp_path)), "-l", "testbuild", "-o", str(output)],
            settings,
            fake.transport,
        )

        assert result.exit_code == 3
        assert "Could not find distribution 'pulp-base-os'" in result.output
        assert list(yaml.safe_load(output.read_text())) == ["testbuild-appstream"]

    def test_missing_content_exit_code(self, tmp_path, settings, fake):
        fake.seed_mirror("pulp-base-os", "https://example/os", ["bash"])
        fake.seed_mirror("pulp-appstream", "https://example/app", ["vim"])

        result = _run(
            ["use-existing", "-f", str(_repos_file(tmp_path)), "-o", str(tmp_path / "out.yaml")],
            settings,
            fake.transport,
        )

        assert result.exit_code == 4
        assert "glibc" in result.output


# -- teardown -----------------------------------------------------------------

class TestTeardown:
    """Tests for the teardown command."""

    def test_removes_declared_mirrors(self, tmp_path, settings, fake):
        fake.seed_mirror("pulp-base-os", "https://example/os", ["bash"])
        fake.seed_mirror("pulp-appstream", "https://example/app", ["vim"])
        fake.seed_mirror("pulp-unrelated", "https://example/other", ["zsh"])

        result = _run(["teardown", "-f", str(_repos_file(tmp_path))], settings, fake.transport)

        assert result.exit_code == 0
        assert [r["name"] for r in fake.repositories.values()] == ["pulp-unrelated"]
        assert [d["name"] for d in fake.distributions.values()] == ["pulp-unrelated"]

    def test_failed_delete_exit_code(self, tmp_path, settings, fake):
        fake.seed_mirror("pulp-base-os", "https://example/os", ["bash"])
        fake.fail_task_names.add("pulpcore.app.tasks.base.general_delete")

        result = _run(["teardown", "-f", str(_repos_file(tmp_path))], settings, fake.transport)

        assert result.exit_code == 6


# -- slim-status --------------------------------------------------------------

class TestSlimStatus:
    """Tests for the slim-status command."""

    def _write(self, path: Path) -> None:
        path.write_text(yaml.safe_dump({
            "testbuild-base-os": {
                "pulp_href": "/pulp/api/v3/repositories/rpm/rpm/9/",
                "source_repo_name": "pulp-base-os",
                "publication_href": "/pulp/api/v3/publications/rpm/rpm/10/",
                "distro_href": "/pulp/api/v3/distributions/rpm/rpm/11/",
                "distro_url": "http://pulp.test/pulp/content/testbuild-base-os/",
            },
        }))

    def test_shows_records(self, tmp_path, settings):
        output = tmp_path / "_slim_repos.yaml"
        self._write(output)

        result = _run(["slim-status", "-o", str(output)], settings, FakePulp().transport)

        assert result.exit_code == 0
        assert "testbuild-base-os" in result.output
        assert "← pulp-base-os" in result.output
        assert "http://pulp.test/pulp/content/testbuild-base-os/" in result.output

    def test_json_output(self, tmp_path, settings):
        output = tmp_path / "_slim_repos.yaml"
        self._write(output)

        result = _run(["slim-status", "-o", str(output), "--json"], settings, FakePulp().transport)

        data = json.loads(result.output)
        assert data["testbuild-base-os"]["source_repo_name"] == "pulp-base-os"

    def test_missing_file(self, tmp_path, settings):
        result = _run(["slim-status", "-o", str(tmp_path / "nope.yaml")], settings, FakePulp().transport)

        assert result.exit_code == 2


# -- configuration ------------------------------------------------------------

class TestSettingsFromEnv:
    """Tests for settings resolution in the CLI group."""

    def test_bad_host_exits_with_config_code(self, tmp_path):
        runner = CliRunner()

        result = runner.invoke(
            cli,
            ["slim-status", "-o", str(tmp_path / "x.yaml")],
            obj={},
            env={"PULP_HOST": "ftp://pulp.example.com"},
        )

        assert result.exit_code == 2
        assert "PULP_HOST must be an http(s) URL" in result.output
