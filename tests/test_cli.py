"""
Tests for the ommrepo command line interface.

Runs the click commands end to end with CliRunner against real archives.
"""

import json

import pytest
from click.testing import CliRunner

from conftest import write_package
from ommrepo.cli import cli
from ommrepo.exit_codes import DATA_ERROR, NOT_FOUND, PARTIAL_SUCCESS, USAGE_ERROR


def json_lines(output):
    return [json.loads(line) for line in output.splitlines() if line.startswith('{')]


@pytest.fixture
def runner(isolated_home):
    return CliRunner()


@pytest.fixture
def populated(runner, mods_dir, index_path):
    """An index generated from two archives."""
    write_package(mods_dir / "a.zip", identifier="alpha", description="First\nmod", category="Maps")
    write_package(mods_dir / "b.zip", identifier="beta", logo=False)
    result = runner.invoke(cli, ['generate', str(index_path), 'Test Mods', str(mods_dir)])
    assert result.exit_code == 0, result.output
    return index_path


class TestHelp:

    def test_main_help(self, runner):
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        for command in ('generate', 'list', 'info', 'show', 'remove', 'config'):
            assert command in result.output

    def test_generate_help(self, runner):
        result = runner.invoke(cli, ['generate', '--help'])
        assert result.exit_code == 0
        assert '--recursive' in result.output
        assert '--rebuild' in result.output


class TestGenerate:

    def test_progress_and_summary(self, runner, mods_dir, index_path):
        write_package(mods_dir / "a.zip", identifier="alpha")

        result = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir)])

        assert result.exit_code == 0, result.output
        assert "package to the repository." in result.stdout
        summary = json_lines(result.stdout)[-1]
        assert summary['added'] == 1
        assert summary['total'] == 1
        assert index_path.exists()

    def test_second_run_skips(self, runner, populated, mods_dir):
        result = runner.invoke(cli, ['generate', str(populated), 'Test Mods', str(mods_dir)])

        assert result.exit_code == 0
        assert "as it was already present in the repository." in result.stdout
        assert json_lines(result.stdout)[-1]['skipped'] == 2

    def test_quiet(self, runner, mods_dir, index_path):
        write_package(mods_dir / "a.zip", identifier="alpha")
        result = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir), '--quiet'])
        assert result.exit_code == 0
        assert result.stdout == ""

    def test_pretty(self, runner, mods_dir, index_path):
        write_package(mods_dir / "a.zip", identifier="alpha")
        result = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir), '--pretty'])
        assert result.exit_code == 0, result.output
        assert "Repository Summary" in result.stdout

    def test_root_not_a_directory(self, runner, tmp_path, index_path):
        result = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(tmp_path / "missing")])
        assert result.exit_code == USAGE_ERROR
        assert not index_path.exists()

    def test_corrupt_index(self, runner, mods_dir, index_path):
        index_path.write_text("<not-a-repository/>")
        result = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir)])
        assert result.exit_code == DATA_ERROR
        assert index_path.read_text() == "<not-a-repository/>"

    def test_strict_fails_on_invalid_archive(self, runner, mods_dir, index_path):
        (mods_dir / "broken.zip").write_bytes(b"nope")
        write_package(mods_dir / "a.zip", identifier="alpha")

        lenient = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir)])
        strict = runner.invoke(cli, ['generate', str(index_path), 'Mods', str(mods_dir), '--strict'])

        assert lenient.exit_code == 0
        assert strict.exit_code == PARTIAL_SUCCESS


class TestEntryCommands:

    def test_list(self, runner, populated):
        result = runner.invoke(cli, ['list', str(populated)])

        assert result.exit_code == 0
        entries = json_lines(result.stdout)
        assert {e['identifier'] for e in entries} == {"alpha", "beta"}
        assert all(e['file'].endswith(".zip") for e in entries)

    def test_list_by_category(self, runner, populated):
        result = runner.invoke(cli, ['list', str(populated), '--category', 'Maps'])
        assert [e['identifier'] for e in json_lines(result.stdout)] == ["alpha"]

    def test_list_pretty(self, runner, populated):
        result = runner.invoke(cli, ['list', str(populated), '--pretty'])
        assert result.exit_code == 0
        assert "alpha" in result.stdout

    def test_list_missing_index(self, runner, tmp_path):
        result = runner.invoke(cli, ['list', str(tmp_path / "nope.xml")])
        assert result.exit_code != 0

    def test_info(self, runner, populated):
        result = runner.invoke(cli, ['info', str(populated)])

        assert result.exit_code == 0
        info = json_lines(result.stdout)[0]
        assert info['title'] == "Test Mods"
        assert info['count'] == 2
        assert info['uuid']

    def test_show(self, runner, populated):
        result = runner.invoke(cli, ['show', str(populated), 'alpha'])

        assert result.exit_code == 0
        details = json_lines(result.stdout)[0]
        assert details['identifier'] == "alpha"
        assert details['description'] == "First\nmod"
        assert details['logo_mime_type'] == "image/jpeg"
        assert details['category'] == "Maps"

    def test_show_unknown(self, runner, populated):
        result = runner.invoke(cli, ['show', str(populated), 'gamma'])
        assert result.exit_code == NOT_FOUND

    def test_remove(self, runner, populated):
        result = runner.invoke(cli, ['remove', str(populated), 'alpha', 'gamma'])

        assert result.exit_code == 0
        outcome = {r['identifier']: r['removed'] for r in json_lines(result.stdout)}
        assert outcome == {'alpha': True, 'gamma': False}

        listed = runner.invoke(cli, ['list', str(populated)])
        assert [e['identifier'] for e in json_lines(listed.stdout)] == ["beta"]

    def test_remove_dry_run(self, runner, populated):
        before = populated.read_bytes()
        result = runner.invoke(cli, ['remove', str(populated), 'alpha', '--dry-run'])

        assert result.exit_code == 0
        assert json_lines(result.stdout)[0]['removed'] is True
        assert populated.read_bytes() == before


class TestConfigCommands:

    def test_show(self, runner):
        result = runner.invoke(cli, ['config', 'show'])
        assert result.exit_code == 0
        config = json.loads(result.stdout)
        assert config['package']['descriptor_file'] == "package.omp"

    def test_show_path(self, runner, isolated_home):
        result = runner.invoke(cli, ['config', 'show', '--path'])
        assert result.exit_code == 0
        assert json.loads(result.stdout)['config_path'].startswith(str(isolated_home))

    def test_generate(self, runner, isolated_home):
        result = runner.invoke(cli, ['config', 'generate'])
        assert result.exit_code == 0
        written = isolated_home / ".ommrepo" / "config.json"
        assert json.loads(written.read_text())['thumbnail']['size'] == 128

        again = runner.invoke(cli, ['config', 'generate'])
        assert "already exists" in again.output
