"""
Tests for matcher composition and compilation
"""

import pytest

from formats.builtin_formats import CITY_RULE, FIRST_NAME_RULE, LAST_NAME_RULE
from matching.errors import RuleDefinitionError
from matching.field_rules import create_rule
from matching.matchers import (
    Alternation,
    Field,
    Literal,
    Sequence,
    compile_matcher,
    embeddable,
    matcher_fields,
    matcher_labels,
)


COMMA = Literal(r'\s*,\s*')
DOLLAR = Literal(r'\s*\$\s*')


class TestSequence:
    """Tests for Sequence matchers."""

    def setup_method(self):
        self.matcher = Sequence([Field(FIRST_NAME_RULE), COMMA, Field(CITY_RULE)])
        self.compiled = compile_matcher(self.matcher)

    def test_match(self):
        assert self.compiled.match('Mckayla, Atlanta') == {
            'FirstName': 'Mckayla',
            'City': 'Atlanta',
        }

    def test_whitespace_around_separator(self):
        assert self.compiled.match('Mckayla ,  New York') == {
            'FirstName': 'Mckayla',
            'City': 'New York',
        }

    def test_no_match(self):
        assert self.compiled.match('Mckayla - Atlanta') is None

    def test_must_cover_whole_input(self):
        # Separator pattern is the only place a comma may go
        assert self.compiled.match(',Atlanta') is None

    def test_named_sequence_captures_span(self):
        compiled = compile_matcher(
            Sequence([Field(FIRST_NAME_RULE), COMMA, Field(CITY_RULE)], name='Person')
        )
        captures = compiled.match('Ann, LA')
        assert captures['Person'] == 'Ann, LA'
        assert captures['FirstName'] == 'Ann'

    def test_duplicate_label_rejected(self):
        with pytest.raises(RuleDefinitionError):
            Sequence([Field(CITY_RULE), COMMA, Field(CITY_RULE)])

    def test_name_clash_rejected(self):
        with pytest.raises(RuleDefinitionError):
            Sequence([Field(CITY_RULE)], name='City')

    def test_empty_rejected(self):
        with pytest.raises(RuleDefinitionError):
            Sequence([])


class TestAlternation:
    """Tests for Alternation matchers."""

    def setup_method(self):
        self.comma_branch = Sequence([Field(FIRST_NAME_RULE), COMMA, Field(CITY_RULE)])
        self.dollar_branch = Sequence([Field(CITY_RULE), DOLLAR, Field(FIRST_NAME_RULE)])

    def test_same_label_in_several_branches(self):
        compiled = compile_matcher(Alternation([self.comma_branch, self.dollar_branch]))

        assert compiled.match('Ann, LA') == {'FirstName': 'Ann', 'City': 'LA'}
        assert compiled.match('LA $ Ann') == {'City': 'LA', 'FirstName': 'Ann'}

    def test_first_branch_wins(self):
        # Both branches accept "a, b"; only the first one's labels come back
        other = Sequence([Field(LAST_NAME_RULE), COMMA, Field(CITY_RULE)])
        compiled = compile_matcher(Alternation([other, self.comma_branch]))

        assert compiled.match('a, b') == {'LastName': 'a', 'City': 'b'}

    def test_failed_branch_leaves_no_labels(self):
        first = Sequence([Field(FIRST_NAME_RULE), Literal('!')])
        second = Sequence([Field(CITY_RULE), Literal(r'\?')])
        compiled = compile_matcher(Alternation([first, second]))

        assert compiled.match('abc?') == {'City': 'abc'}

    def test_named_nested_alternation(self):
        separator = Alternation([Literal(','), Literal(r'\$')], name='Sep')
        compiled = compile_matcher(
            Sequence([Field(FIRST_NAME_RULE), separator, Field(CITY_RULE)])
        )

        assert compiled.match('Ann$LA') == {'FirstName': 'Ann', 'Sep': '$', 'City': 'LA'}
        assert compiled.match('Ann,LA')['Sep'] == ','
        assert compiled.match('Ann;LA') is None

    def test_match_alternative_reports_index(self):
        compiled = compile_matcher(Alternation([self.comma_branch, self.dollar_branch]))

        index, captures = compiled.match_alternative('LA $ Ann')
        assert index == 1
        assert captures == {'City': 'LA', 'FirstName': 'Ann'}
        assert compiled.match_alternative('LA # Ann') is None

    def test_match_alternative_needs_alternation(self):
        with pytest.raises(TypeError):
            compile_matcher(self.comma_branch).match_alternative('Ann, LA')

    def test_name_clash_rejected(self):
        with pytest.raises(RuleDefinitionError):
            Alternation([Field(CITY_RULE)], name='City')

    def test_empty_rejected(self):
        with pytest.raises(RuleDefinitionError):
            Alternation([])


class TestCompilation:

    def test_standalone_field(self):
        compiled = compile_matcher(Field(CITY_RULE))
        assert compiled.match('New York') == {'City': 'New York'}

    def test_literal_only(self):
        assert compile_matcher(Literal('abc')).match('abc') == {}
        assert compile_matcher(Literal('abc')).match('abcd') is None

    def test_custom_capture_pattern(self):
        digits = create_rule(name='Digits', patterns=[r'\d+'], lookup={}, capture=r'\d+')
        compiled = compile_matcher(Sequence([Field(digits), Literal(r'\w*')]))
        assert compiled.match('123abc') == {'Digits': '123'}

    def test_named_groups_in_captures_do_not_clash(self):
        left = create_rule(name='Left', patterns=[r'\d+'], lookup={}, capture=r'(?P<num>\d+)')
        right = create_rule(name='Right', patterns=[r'\d+'], lookup={}, capture=r'(?P<num>\d+)')
        compiled = compile_matcher(Sequence([Field(left), Literal('-'), Field(right)]))

        assert compiled.match('12-34') == {'Left': '12', 'Right': '34'}

    def test_invalid_literal(self):
        with pytest.raises(RuleDefinitionError):
            compile_matcher(Literal('('))

    def test_embeddable(self):
        assert embeddable(r'(?P<num>\d+)-(?P<rest>\w+)') == r'(?:\d+)-(?:\w+)'
        assert embeddable(r'[a-z]+') == r'[a-z]+'

    def test_back_reference_refused(self):
        with pytest.raises(RuleDefinitionError):
            embeddable(r'(?P<x>a)(?P=x)')


class TestIntrospection:

    def test_labels(self):
        matcher = Sequence(
            [
                Field(FIRST_NAME_RULE),
                Alternation([Literal(','), Literal(r'\$')], name='Sep'),
                Field(CITY_RULE),
            ],
            name='Person',
        )
        assert matcher_labels(matcher) == {'FirstName', 'Sep', 'City', 'Person'}

    def test_fields(self):
        matcher = Alternation([
            Sequence([Field(FIRST_NAME_RULE), COMMA, Field(CITY_RULE)]),
            Field(LAST_NAME_RULE),
        ])
        assert matcher_fields(matcher) == {
            'FirstName': FIRST_NAME_RULE,
            'City': CITY_RULE,
            'LastName': LAST_NAME_RULE,
        }

    def test_not_a_matcher(self):
        with pytest.raises(TypeError):
            matcher_labels('City')
