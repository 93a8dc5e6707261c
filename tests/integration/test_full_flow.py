"""Integration tests for the complete workspace flow"""
import re
import threading

import pytest
from featurecraft.core.workspace import Workspace
from featurecraft.models.document import NodeKind, step

STEPS = (
    '# featurecraft (red|green)\n'
    'Given /^I have a (.*) cucumber$/ do |color|\n'
    'end\n'
    '\n'
    'Given /^I have (\\d+) cucumbers$/ do |count|\n'
    'end\n'
    '\n'
    'When /^I eat (\\d+) cucumbers$/ do |count|\n'
    'end\n'
)

FEATURE = (
    '@smoke\n'
    'Feature: Eating\n'
    '\n'
    '  Background:\n'
    '    Given I have 42 cucumbers\n'
    '\n'
    '  @wip\n'
    '  Scenario: Eat some\n'
    '    When I eat 2 cucumbers\n'
    '    Then I am full\n'
    '\n'
    '  @slow\n'
    '  Scenario: Colors\n'
    '    Given I have a red cucumber\n'
)


@pytest.fixture
def project(tmp_path):
    steps_dir = tmp_path / 'step_definitions'
    steps_dir.mkdir()
    (steps_dir / 'cucumber_steps.rb').write_text(STEPS, encoding='utf-8')
    features_dir = tmp_path / 'features'
    features_dir.mkdir()
    (features_dir / 'eating.feature').write_text(FEATURE, encoding='utf-8')
    return tmp_path


@pytest.fixture
def workspace(project):
    ws = Workspace()
    ws.import_step_definitions([project / 'step_definitions'])
    ws.import_features([project / 'features'])
    yield ws
    ws.close()


def scenario_titles(nodes):
    return [node.title for node in nodes]


def test_import_matches_steps(workspace):
    assert len(workspace.matcher.patterns) == 3
    assert len(workspace.features) == 1
    assert [node.title for node in workspace.unmatched_steps()] == ['Then I am full']

    background_step = workspace.features[0].children[0].children[0]
    assert background_step.matched
    assert background_step.bound_values == ['42']


def test_edit_step_text_rematches(workspace):
    unmatched = workspace.unmatched_steps()[0]

    result = workspace.edit_step_text(unmatched, 'Then I have 40 cucumbers')

    assert result.matched
    assert unmatched.bound_values == ['40']
    assert workspace.unmatched_steps() == []

    with pytest.raises(ValueError):
        workspace.edit_step_text(unmatched.parent, 'Then nothing')


def test_reimport_replaces_pattern_set(workspace, project):
    other = project / 'other_steps.rb'
    other.write_text('Then /^I am full$/ do\nend\n', encoding='utf-8')

    workspace.import_step_definitions([other])

    assert len(workspace.matcher.patterns) == 1
    assert [node.title for node in workspace.unmatched_steps()] == [
        'Given I have 42 cucumbers',
        'When I eat 2 cucumbers',
        'Given I have a red cucumber',
    ]


def test_reimport_same_files_is_idempotent(workspace, project):
    before = [(node.title, node.matched, node.bound_values) for node in workspace.features[0].iter_steps()]

    workspace.import_step_definitions([project / 'step_definitions'])

    after = [(node.title, node.matched, node.bound_values) for node in workspace.features[0].iter_steps()]
    assert before == after


def test_async_step_import(workspace, project):
    other = project / 'other_steps.rb'
    other.write_text('Then /^I am (.*)$/ do |state|\nend\n', encoding='utf-8')

    future = workspace.import_step_definitions_async([project / 'step_definitions', other])
    result = future.result(timeout=10)

    assert result.errors == []
    assert workspace.unmatched_steps() == []
    full = [node for node in workspace.features[0].iter_steps() if node.title == 'Then I am full'][0]
    assert full.bound_values == ['full']


def test_unreadable_step_file_is_reported(workspace, project):
    result = workspace.import_step_definitions([project / 'missing.rb', project / 'step_definitions'])

    assert len(result.errors) == 1
    assert len(workspace.matcher.patterns) == 3


def test_add_node_matches_new_steps(workspace):
    eating = workspace.features[0].children[1]
    new_step = step('When I eat 3 cucumbers')

    workspace.add_node(eating, new_step, 1)

    assert eating.children[1] is new_step
    assert new_step.matched
    assert new_step.bound_values == ['3']


def test_remove_node(workspace):
    root = workspace.features[0]
    colors = root.children[2]

    workspace.remove_node(colors)
    assert colors.parent is None
    assert scenario_titles(root.children) == ['', 'Eat some']

    workspace.remove_node(root)
    assert workspace.features == []


def test_defined_tags_and_run_selection(workspace):
    assert workspace.defined_tags() == ['@slow', '@smoke', '@wip']
    assert scenario_titles(workspace.selected_scenarios()) == ['Eat some', 'Colors']

    workspace.toggle_run_tag('@wip')
    assert workspace.is_run_tag_enabled('@wip')
    assert scenario_titles(workspace.selected_scenarios()) == ['Eat some']

    workspace.toggle_run_tag('@wip')
    assert not workspace.is_run_tag_enabled('@wip')
    assert scenario_titles(workspace.selected_scenarios()) == ['Colors']

    workspace.toggle_run_tag('@wip')
    workspace.toggle_run_tag('@smoke')
    assert scenario_titles(workspace.selected_scenarios()) == ['Eat some', 'Colors']


def test_export_scenario(workspace):
    colors = workspace.features[0].children[2]

    assert workspace.export_node(colors) == (
        '@smoke\n'
        'Feature: Eating\n'
        '\n'
        '  Background:\n'
        '    Given I have 42 cucumbers\n'
        '\n'
        '  @slow\n'
        '  Scenario: Colors\n'
        '    Given I have a red cucumber\n'
    )


def test_save_features_round_trips(workspace, project):
    feature_file = project / 'features' / 'eating.feature'
    feature_file.write_text('stale', encoding='utf-8')

    assert workspace.save_features() == []
    assert feature_file.read_text(encoding='utf-8') == FEATURE


def test_export_features_to_directory(workspace, project):
    out = project / 'out'

    assert workspace.export_features(out) == []
    assert (out / 'eating.feature').read_text(encoding='utf-8') == FEATURE


def test_write_failure_is_reported(workspace, project):
    blocker = project / 'blocker'
    blocker.write_text('not a directory', encoding='utf-8')

    errors = workspace.export_features(blocker / 'out')

    assert len(errors) == 1
    assert 'eating.feature' in errors[0].path


def test_scratch_features(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ws = Workspace()
    try:
        root = ws.scratch_features()

        assert ws.features == [root]
        assert root.title == 'New Feature'
        assert [(child.kind, child.title) for child in root.children] == [(NodeKind.SCENARIO, 'New Scenario')]
        assert re.fullmatch(r'noname_\d+\.feature', root.filename)

        assert ws.save_features() == []
        assert (tmp_path / root.filename).read_text(encoding='utf-8') == (
            'Feature: New Feature\n\n  Scenario: New Scenario\n'
        )
    finally:
        ws.close()


def test_danish_workspace(tmp_path):
    (tmp_path / 'agurk_steps.rb').write_text('Givet /^jeg har (\\d+) agurker$/ do |n|\nend\n', encoding='utf-8')
    (tmp_path / 'agurk.feature').write_text(
        'Egenskab: Agurker\n\n  Scenarie: Spise\n    Givet jeg har 3 agurker\n', encoding='utf-8'
    )
    config = {'locale': 'da'}
    ws = Workspace(config)
    try:
        ws.import_step_definitions([tmp_path / 'agurk_steps.rb'])
        ws.import_features([tmp_path / 'agurk.feature'])

        assert ws.unmatched_steps() == []
        assert ws.features[0].children[0].children[0].bound_values == ['3']
    finally:
        ws.close()


def test_run_tag_toggle_waits_for_tree_lock(workspace):
    toggler = threading.Thread(target=workspace.toggle_run_tag, args=('@wip',))

    with workspace.lock:
        toggler.start()
        toggler.join(timeout=0.2)
        assert toggler.is_alive()
        assert not workspace.run_tags.is_enabled('@wip')

    toggler.join(timeout=5)
    assert not toggler.is_alive()
    assert workspace.is_run_tag_enabled('@wip')


def test_workspace_as_context_manager(project):
    with Workspace() as ws:
        future = ws.import_step_definitions_async([project / 'step_definitions'])
        ws.import_features([project / 'features'])

    assert future.done()
    assert len(ws.matcher.patterns) == 3
    with pytest.raises(RuntimeError):
        ws.import_step_definitions_async([project / 'step_definitions'])
