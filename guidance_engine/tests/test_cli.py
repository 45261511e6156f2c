"""
Tests for the command line interface.
"""
import json

import pytest

from guidance_engine.cli import EXIT_FAIL, EXIT_OK, EXIT_WARN, build_parser, main


@pytest.fixture
def domain_files(tmp_path, write_yaml, caching_doc, review_doc, rendering_doc):
    """Directory holding the three test domains, apart from input files."""
    (tmp_path / 'domains').mkdir()
    write_yaml('domains/caching.yaml', caching_doc)
    write_yaml('domains/review.yaml', review_doc)
    return write_yaml('domains/rendering.yaml', rendering_doc).parent


def _run(domain_files, *args):
    return main(['--no-builtin', '--registry', str(domain_files), *args])


class TestRecommendCommand:

    def test_prints_recommendation(self, domain_files, write_yaml, capsys):
        situation = write_yaml('situation.yaml', {'contentChangeFrequency': 'rare', 'needsSEO': True})

        code = _run(domain_files, 'recommend', '--domain', 'rendering-mode', '--situation', str(situation))

        assert code == EXIT_OK
        assert "Recommended: SSG" in capsys.readouterr().out

    def test_json_output(self, domain_files, write_yaml, capsys):
        situation = write_yaml('situation.yaml', {'contentChangeFrequency': 'realtime'})

        code = _run(
            domain_files, '--format', 'json',
            'recommend', '--domain', 'rendering-mode', '--situation', str(situation)
        )

        assert code == EXIT_OK
        payload = json.loads(capsys.readouterr().out)
        assert payload['recommendation']['label'] == 'SSR'

    def test_missing_field_fails(self, domain_files, write_yaml, capsys):
        situation = write_yaml('situation.yaml', {'contentChangeFrequency': 'daily'})

        code = _run(domain_files, 'recommend', '--domain', 'rendering-mode', '--situation', str(situation))

        assert code == EXIT_FAIL
        assert "MISSING_FIELD" in capsys.readouterr().out

    def test_missing_situation_file_fails(self, domain_files, tmp_path):
        code = _run(
            domain_files, 'recommend', '--domain', 'rendering-mode',
            '--situation', str(tmp_path / 'absent.yaml')
        )

        assert code == EXIT_FAIL

    def test_nested_situation_fails(self, domain_files, write_yaml):
        situation = write_yaml('situation.yaml', {'contentChangeFrequency': {'value': 'rare'}})

        code = _run(domain_files, 'recommend', '--domain', 'rendering-mode', '--situation', str(situation))

        assert code == EXIT_FAIL


    def test_non_utf8_situation_fails(self, domain_files, tmp_path):
        situation = tmp_path / 'situation.yaml'
        situation.write_bytes(b"needsSEO: \xff\xfe true\n")

        code = _run(domain_files, 'recommend', '--domain', 'rendering-mode', '--situation', str(situation))

        assert code == EXIT_FAIL


class TestValidateCommand:

    @pytest.mark.parametrize('artifact,expected', [
        ({'usesContentHash': True}, EXIT_OK),
        ({'usesContentHash': False}, EXIT_FAIL),
    ])
    def test_exit_code_follows_status(self, domain_files, write_yaml, artifact, expected):
        path = write_yaml('artifact.yaml', artifact)

        code = _run(domain_files, 'validate', '--domain', 'build-caching', '--artifact', str(path))

        assert code == expected

    def test_warn_exit_code(self, domain_files, write_yaml, capsys):
        path = write_yaml('artifact.yaml', {'hasConsoleLog': False, 'propsTyped': True, 'lintErrors': 0})

        code = _run(
            domain_files, '--format', 'markdown',
            'validate', '--domain', 'code-review', '--artifact', str(path)
        )

        assert code == EXIT_WARN
        assert "## Checklist" in capsys.readouterr().out

    def test_unknown_domain_fails(self, domain_files, write_yaml, capsys):
        path = write_yaml('artifact.yaml', {})

        code = _run(domain_files, 'validate', '--domain', 'nope', '--artifact', str(path))

        assert code == EXIT_FAIL
        assert "UNKNOWN_DOMAIN" in capsys.readouterr().out


class TestRegistryCommands:

    def test_domains_lists_builtin(self, capsys):
        code = main(['domains'])

        assert code == EXIT_OK
        out = capsys.readouterr().out
        assert "rendering-mode" in out
        assert "test-runner" in out

    def test_check_registry(self, domain_files, capsys):
        code = _run(domain_files, 'check-registry')

        assert code == EXIT_OK
        assert "Registry OK: 3 domain(s)" in capsys.readouterr().out

    def test_invalid_registry_fails(self, write_yaml, caching_doc):
        caching_doc['rules'].append(dict(caching_doc['rules'][0]))
        path = write_yaml('broken.yaml', caching_doc)

        assert main(['--no-builtin', '--registry', str(path), 'check-registry']) == EXIT_FAIL

    @pytest.mark.parametrize('rule_update', [{'id': ['a']}, {'predicate': {'ref': ['x']}}])
    def test_malformed_rule_fails_with_exit_code(self, write_yaml, caching_doc, rule_update):
        caching_doc['rules'][0].update(rule_update)
        path = write_yaml('broken.yaml', caching_doc)

        assert main(['--no-builtin', '--registry', str(path), 'check-registry']) == EXIT_FAIL

    def test_non_utf8_registry_fails(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_bytes(b"version: 1\ndomain: \xff\xfe\n")

        assert main(['--no-builtin', '--registry', str(path), 'check-registry']) == EXIT_FAIL

    def test_config_file_supplies_sources(self, domain_files, write_yaml, capsys):
        config = write_yaml('engine.yaml', {
            'registry': {'sources': [str(domain_files / 'review.yaml')], 'include_builtin': False},
        })

        code = main(['--config', str(config), 'check-registry'])

        assert code == EXIT_OK
        assert "code-review" in capsys.readouterr().out

    def test_invalid_config_fails(self, write_yaml):
        config = write_yaml('engine.yaml', {'output': {'format': 'html'}})

        assert main(['--config', str(config), 'domains']) == EXIT_FAIL


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])
