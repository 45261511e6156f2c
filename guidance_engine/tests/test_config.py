"""
Tests for engine configuration loading.
"""
from pathlib import Path

import pytest

from guidance_engine.config import EngineConfig


class TestEngineConfig:
    """Test configuration parsing and defaults."""

    def test_defaults(self):
        config = EngineConfig.from_dict({})

        assert config.sources == []
        assert config.include_builtin is True
        assert config.log_level == 'WARNING'
        assert config.output_format == 'text'

    def test_from_file_resolves_relative_sources(self, write_yaml, tmp_path):
        path = write_yaml('engine.yaml', {
            'registry': {'sources': ['domains', '/abs/extra.yaml'], 'include_builtin': False},
            'logging': {'level': 'debug'},
            'output': {'format': 'json'},
        })

        config = EngineConfig.from_file(path)

        assert config.sources == [str(tmp_path / 'domains'), str(Path('/abs/extra.yaml'))]
        assert config.include_builtin is False
        assert config.log_level == 'DEBUG'
        assert config.output_format == 'json'
        assert config.path == path

    def test_packaged_config_is_valid(self):
        path = Path(__file__).resolve().parent.parent / 'config.yaml'

        config = EngineConfig.from_file(path)

        assert config.include_builtin is True

    def test_packaged_config_loaded_from_package(self):
        packaged = EngineConfig.packaged()
        on_disk = EngineConfig.from_file(Path(__file__).resolve().parent.parent / 'config.yaml')

        assert packaged.path is None
        assert (packaged.sources, packaged.include_builtin, packaged.log_level, packaged.output_format) == (
            on_disk.sources, on_disk.include_builtin, on_disk.log_level, on_disk.output_format
        )

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_file(tmp_path / 'absent.yaml')

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text('')

        assert EngineConfig.from_file(path).output_format == 'text'

    @pytest.mark.parametrize('raw,message', [
        ({'metrics': {}}, "Unknown config section"),
        ({'output': 'json'}, "must be a mapping"),
        ({'registry': {'sources': 'domains'}}, "registry.sources"),
        ({'registry': {'include_builtin': 'yes'}}, "include_builtin"),
        ({'logging': {'level': 'LOUD'}}, "logging.level"),
        ({'output': {'format': 'html'}}, "output.format"),
    ])
    def test_invalid_values_rejected(self, raw, message):
        with pytest.raises(ValueError, match=message):
            EngineConfig.from_dict(raw)
