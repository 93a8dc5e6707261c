"""Unit tests for step matcher"""
import pytest
from featurecraft.models.document import background, comment, feature, scenario, step
from featurecraft.parser.step_definition_parser import StepDefinitionParser
from featurecraft.parser.step_matcher import PatternMatcher, match


@pytest.fixture
def patterns():
    return StepDefinitionParser().parse_lines([
        'Given /^I (.*) 42 cucumbers$/ do |verb|',
        'Given /^I have (\\d+) cucumbers$/ do |count|',
        'When /^I eat (\\d+) cucumbers$/ do |count|',
    ])


def test_first_matching_pattern_wins(patterns):
    result = match('I have 42 cucumbers', patterns)

    assert result.matched
    assert result.pattern is patterns[0]
    assert result.bound_values == ['have']


def test_later_pattern_matches_when_earlier_does_not(patterns):
    result = match('Given I have 7 cucumbers', patterns)

    assert result.pattern is patterns[1]
    assert result.bound_values == ['7']


def test_unmatched_step(patterns):
    result = match('Then I am full', patterns)

    assert not result.matched
    assert result.bound_values == []
    assert result.pattern is None


def test_whole_text_must_match(patterns):
    assert not match('When I eat 3 cucumbers quickly', patterns).matched


def test_any_keyword_can_prefix_a_step(patterns):
    result = match('And I eat 3 cucumbers', patterns)

    assert result.prefix == 'And'
    assert result.bound_values == ['3']


def test_apply_annotates_step_node(patterns):
    matcher = PatternMatcher(patterns)
    node = step('When I eat 3 cucumbers')

    matcher.apply(node)
    assert node.matched
    assert node.bound_values == ['3']

    node.title = 'When I eat no cucumbers'
    matcher.apply(node)
    assert not node.matched
    assert node.bound_values == []


def test_replace_patterns_drops_previous_set(patterns):
    matcher = PatternMatcher(patterns)
    node = step('When I eat 3 cucumbers')
    matcher.apply(node)

    matcher.replace_patterns(StepDefinitionParser().parse_lines(['Then /^something else$/ do']))

    assert len(matcher.patterns) == 1
    assert not matcher.apply(node).matched


def test_apply_all_counts_unmatched(patterns):
    matcher = PatternMatcher(patterns)
    root = feature('Cucumbers')
    bg = background()
    bg.add_child(step('Given I have 5 cucumbers'))
    eating = scenario('Eating')
    eating.add_child(step('When I eat 3 cucumbers'))
    eating.add_child(comment('not a step'))
    eating.add_child(step('Then I should be full'))
    root.add_child(bg)
    root.add_child(eating)

    assert matcher.apply_all([root]) == 1
    assert [node.matched for node in root.iter_steps()] == [True, True, False]
