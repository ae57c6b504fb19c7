"""
Tests for YAML configuration loading
"""

from pathlib import Path

import pytest
import yaml

from formats.config_loader import ConfigLoader, load_config
from matching.errors import ConfigError, FormatError, RuleDefinitionError
from pipeline import NormalizationPipeline


CONFIG_PATH = Path(__file__).parent.parent / "config" / "formats.yaml"

NAME_AND_CITY = {
    'rules': [
        {'name': 'FirstName', 'recognizers': [{'pattern': r'[^\W\d_]+'}], 'lookup': {}},
        {'name': 'City', 'recognizers': [r'[A-Za-z ]+'], 'lookup': {'LA': 'Los Angeles'}},
    ],
}


def write_config(tmp_path, data):
    path = tmp_path / "formats.yaml"
    path.write_text(yaml.safe_dump(data), encoding='utf-8')
    return path


class TestShippedConfig:
    """The shipped formats.yaml behaves like the built-in formats."""

    def setup_method(self):
        self.config = load_config(CONFIG_PATH)

    def test_batch(self, sample_groups, expected_output):
        pipeline = NormalizationPipeline(self.config)
        assert pipeline.normalize_batch(sample_groups) == expected_output

    def test_same_shape_as_builtin(self, config):
        assert self.config.dispatcher.name == config.dispatcher.name
        assert self.config.dispatcher.format_names == config.dispatcher.format_names
        assert set(self.config.rules) == set(config.rules)

    def test_invalid_date(self):
        with pytest.raises(FormatError) as exc_info:
            NormalizationPipeline(self.config).normalize('Mckayla , Atlanta , 5 $ 29 $ 1986')
        assert exc_info.value.format_name == 'Date'

    def test_loader_keeps_raw_data(self):
        loader = ConfigLoader(CONFIG_PATH)
        assert loader.config['dispatcher'] == 'GeneralInput'
        assert loader.spec.formats[0].name == 'Dollar'


class TestLayouts:
    """Layout elements beyond plain fields."""

    def test_one_of(self):
        data = dict(NAME_AND_CITY, formats=[{
            'name': 'Either',
            'layout': [{'one_of': [
                [{'field': 'FirstName'}, {'literal': r';\s*'}, {'field': 'City'}],
                [{'field': 'City'}, {'literal': r'\s*/\s*'}, {'field': 'FirstName'}],
            ]}],
            'template': '{City}/{FirstName}',
        }])
        loader = ConfigLoader()
        loader.load_dict(data)
        pipeline = NormalizationPipeline(loader.build())

        assert pipeline.normalize('Ann; LA') == 'Los Angeles/Ann'
        assert pipeline.normalize('LA / Ann') == 'Los Angeles/Ann'

    def test_named_one_of(self):
        data = dict(NAME_AND_CITY, formats=[{
            'name': 'Joined',
            'layout': [
                {'field': 'FirstName'},
                {'one_of': [[{'literal': '-'}], [{'literal': '/'}]], 'name': 'Sep'},
                {'field': 'City'},
            ],
            'template': '{FirstName}{Sep}{City}',
        }])
        loader = ConfigLoader()
        loader.load_dict(data)

        assert NormalizationPipeline(loader.build()).normalize('Ann/LA') == 'Ann/Los Angeles'

    def test_nested_format(self):
        data = dict(NAME_AND_CITY, formats=[
            {
                'name': 'Home',
                'layout': [{'literal': 'from '}, {'field': 'City'}],
                'template': '({City})',
            },
            {
                'name': 'Person',
                'separator': r'\s+',
                'layout': [{'field': 'FirstName'}, {'format': 'Home'}],
                'template': '{FirstName} {Home}',
            },
        ])
        loader = ConfigLoader()
        loader.load_dict(data)
        pipeline = NormalizationPipeline(loader.build())

        assert pipeline.normalize('Ann from LA') == 'Ann (Los Angeles)'
        assert pipeline.detect_format('Ann from LA') == 'Person'
        assert pipeline.normalize('from NYC') == '(NYC)'

    def test_format_inside_one_of(self):
        data = {
            'rules': [
                {'name': 'Tag', 'recognizers': [r'[a-z]+'], 'lookup': {}},
                {'name': 'City', 'recognizers': [r'[A-Za-z ]+'], 'lookup': {'LA': 'Los Angeles'}},
            ],
            'formats': [
                {
                    'name': 'Place',
                    'layout': [{'literal': 'in '}, {'field': 'City'}],
                    'template': '{City}',
                },
                {
                    'name': 'Outer',
                    'layout': [
                        {'field': 'Tag'},
                        {'literal': ': '},
                        {'one_of': [[{'format': 'Place'}], [{'literal': 'x'}]]},
                    ],
                    'template': '{Tag} {Place}',
                },
            ],
        }
        loader = ConfigLoader()
        loader.load_dict(data)
        config = loader.build()
        pipeline = NormalizationPipeline(config)

        assert pipeline.normalize('foo: in LA') == 'foo Los Angeles'
        assert pipeline.normalize('foo: x') == 'foo '
        assert config.dispatcher.get('Outer').embedded == (config.dispatcher.get('Place'),)

    def test_template_helper_rule(self, tmp_path):
        path = write_config(tmp_path, {
            'dispatcher': 'Birthday',
            'rules': [
                {
                    'name': 'Month',
                    'recognizers': [r'0*(?P<Digits>[1-9]\d?)'],
                    'template': '{Digits}',
                },
                {
                    'name': 'Birth',
                    'recognizers': [r'(?P<Month>\d+)\.(?P<Day>\d+)'],
                    'template': '{Month}/{Day}',
                },
            ],
            'formats': [{
                'name': 'Dotted',
                'layout': [{'field': 'Birth'}],
                'template': '{Birth}',
            }],
        })
        pipeline = NormalizationPipeline(load_config(path))

        assert pipeline.normalize('04.09') == '4/09'
        with pytest.raises(FormatError) as exc_info:
            pipeline.normalize('00.09')
        assert exc_info.value.subject == '00'
        assert exc_info.value.format_name == 'Month'


class TestInvalidConfig:
    """Tests for configuration errors."""

    def setup_method(self):
        self.loader = ConfigLoader()

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml")

    def test_bad_yaml(self, tmp_path):
        path = tmp_path / "formats.yaml"
        path.write_text("rules: [unclosed\n", encoding='utf-8')
        with pytest.raises(ConfigError):
            self.loader.load(path)

    def test_top_level_list(self):
        with pytest.raises(ConfigError):
            self.loader.load_dict([{'name': 'Comma'}])

    def test_no_formats(self):
        with pytest.raises(ConfigError):
            self.loader.load_dict(dict(NAME_AND_CITY, formats=[]))

    def test_two_assemblers(self):
        data = {
            'rules': [{
                'name': 'City',
                'recognizers': [r'\w+'],
                'lookup': {},
                'template': '{City}',
            }],
            'formats': [{'name': 'F', 'layout': [{'field': 'City'}], 'template': '{City}'}],
        }
        with pytest.raises(ConfigError):
            self.loader.load_dict(data)

    def test_recognizer_with_both_kinds(self):
        data = {
            'rules': [{
                'name': 'Date',
                'recognizers': [{'pattern': r'\d+', 'date': '%Y'}],
                'lookup': {},
            }],
            'formats': [{'name': 'F', 'layout': [{'field': 'Date'}], 'template': '{Date}'}],
        }
        with pytest.raises(ConfigError):
            self.loader.load_dict(data)

    def test_named_field_element(self):
        data = dict(NAME_AND_CITY, formats=[{
            'name': 'F',
            'layout': [{'field': 'City', 'name': 'Town'}],
            'template': '{City}',
        }])
        with pytest.raises(ConfigError):
            self.loader.load_dict(data)

    def test_build_before_load(self):
        with pytest.raises(ConfigError):
            self.loader.build()

    def test_unknown_field(self):
        self.loader.load_dict(dict(NAME_AND_CITY, formats=[{
            'name': 'F',
            'layout': [{'field': 'Country'}],
            'template': '{Country}',
        }]))
        with pytest.raises(RuleDefinitionError):
            self.loader.build()

    def test_format_used_before_definition(self):
        self.loader.load_dict(dict(NAME_AND_CITY, formats=[
            {'name': 'Outer', 'layout': [{'format': 'Inner'}], 'template': '{Inner}'},
            {'name': 'Inner', 'layout': [{'field': 'City'}], 'template': '{City}'},
        ]))
        with pytest.raises(RuleDefinitionError):
            self.loader.build()

    def test_rule_defined_twice(self):
        rules = NAME_AND_CITY['rules'] + [NAME_AND_CITY['rules'][0]]
        self.loader.load_dict({
            'rules': rules,
            'formats': [{'name': 'F', 'layout': [{'field': 'City'}], 'template': '{City}'}],
        })
        with pytest.raises(RuleDefinitionError):
            self.loader.build()

    def test_invalid_regex(self):
        self.loader.load_dict({
            'rules': [{'name': 'City', 'recognizers': ['([a-z'], 'lookup': {}}],
            'formats': [{'name': 'F', 'layout': [{'field': 'City'}], 'template': '{City}'}],
        })
        with pytest.raises(RuleDefinitionError):
            self.loader.build()
