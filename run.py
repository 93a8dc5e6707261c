#!/usr/bin/env python3
"""
FeatureCraft - feature file editor core
Command line entry point for matching steps against step definitions and
re-serializing feature files
"""

import sys
from pathlib import Path

import click

from featurecraft.core.config_manager import ConfigManager
from featurecraft.core.workspace import Workspace
from featurecraft.models.document import NodeKind
from featurecraft.utils.logger import setup_logger

# Initialize logger
logger = setup_logger(__name__)


def _load_workspace(ctx) -> Workspace:
    options = ctx.obj
    config_manager = ConfigManager(options['config'], options['env'])
    config = config_manager.load_config()
    if options['locale']:
        config['locale'] = options['locale']
    return Workspace(config)


def _import_steps(workspace: Workspace, steps) -> bool:
    if not steps:
        return True
    result = workspace.import_step_definitions(steps)
    for error in result.errors:
        click.echo(f"Error: {error}", err=True)
    return not result.errors


@click.group()
@click.option('--config', '-c', default='config/config.yaml', help='Path to config file')
@click.option('--env', '-e', default='default', help='Environment config to merge on top')
@click.option('--locale', '-l', default=None, help='Gherkin language (en/da)')
@click.pass_context
def main(ctx, config, env, locale):
    """
    FeatureCraft - work with feature files and step definitions

    Examples:
        # Check which steps have no step definition
        python run.py check features --steps step_definitions

        # Export one scenario together with its feature header and background
        python run.py export features/login.feature --scenario "Valid login"
    """
    ctx.obj = {'config': config, 'env': env, 'locale': locale}


@main.command()
@click.argument('step_text')
@click.option('--steps', '-s', multiple=True, required=True, help='Step definition file or directory')
@click.pass_context
def match(ctx, step_text, steps):
    """Show whether STEP_TEXT matches a step definition"""
    workspace = _load_workspace(ctx)
    _import_steps(workspace, steps)
    result = workspace.matcher.match(step_text)
    if not result.matched:
        click.echo("unmatched")
        sys.exit(1)
    click.echo(f"matched: {result.pattern.pattern} ({result.pattern.source}:{result.pattern.line_number})")
    for i, value in enumerate(result.bound_values, 1):
        click.echo(f"  ${i} = {value}")


@main.command()
@click.option('--steps', '-s', multiple=True, required=True, help='Step definition file or directory')
@click.pass_context
def steps(ctx, steps):
    """List step definitions and their parameters"""
    workspace = _load_workspace(ctx)
    ok = _import_steps(workspace, steps)
    for pattern in workspace.matcher.patterns:
        click.echo(f"{pattern.source}:{pattern.line_number}: {pattern.pattern}")
        for i, parameter in enumerate(pattern.parameters[1:], 1):
            values = 'any value' if parameter.is_wildcard else ' | '.join(parameter.values)
            click.echo(f"  ${i}: {values}")
    if not ok:
        sys.exit(1)


@main.command(name='format')
@click.argument('feature_files', nargs=-1, required=True)
@click.option('--write', '-w', is_flag=True, help='Rewrite the files in place')
@click.pass_context
def format_features(ctx, feature_files, write):
    """Re-serialize feature files in canonical form"""
    workspace = _load_workspace(ctx)
    result = workspace.import_features(feature_files)
    errors = []
    if write:
        errors = workspace.save_features()
        for error in errors:
            click.echo(f"Error: {error}", err=True)
    else:
        for feature in workspace.features:
            click.echo(workspace.export_node(feature), nl=False)
    if result.errors or errors:
        sys.exit(1)


@main.command()
@click.argument('feature_file')
@click.option('--scenario', '-s', 'scenario_title', default=None, help='Scenario title to export')
@click.option('--output', '-o', default=None, help='Write to this file instead of stdout')
@click.pass_context
def export(ctx, feature_file, scenario_title, output):
    """Export a feature, or one scenario with its feature header and background"""
    workspace = _load_workspace(ctx)
    result = workspace.import_features([feature_file])
    if not result.features:
        click.echo(f"Error: no feature found in {feature_file}", err=True)
        sys.exit(1)

    node = result.features[0]
    if scenario_title:
        scenarios = [child for child in node.children
                     if child.kind == NodeKind.SCENARIO and child.title == scenario_title]
        if not scenarios:
            click.echo(f"Error: no scenario named {scenario_title!r}", err=True)
            sys.exit(1)
        node = scenarios[0]

    text = workspace.export_node(node)
    if output:
        Path(output).write_text(text, encoding='utf-8')
        logger.info(f"Exported to {output}")
    else:
        click.echo(text, nl=False)


@main.command()
@click.argument('paths', nargs=-1, required=True)
@click.option('--select', multiple=True, help='Run tag to include (@tag) or exclude (~@tag)')
@click.pass_context
def tags(ctx, paths, select):
    """List the tags defined in feature files, or the scenarios a run tag selection picks"""
    workspace = _load_workspace(ctx)
    workspace.import_features(paths)
    if not select:
        for tag in workspace.defined_tags():
            click.echo(tag)
        return

    for tag in select:
        if tag.startswith('~'):
            workspace.toggle_run_tag(tag[1:])
        workspace.toggle_run_tag(tag.lstrip('~'))
    for scenario in workspace.selected_scenarios():
        click.echo(f"{scenario.feature().title}: {scenario.title}")


@main.command()
@click.argument('paths', nargs=-1, required=True)
@click.option('--steps', '-s', multiple=True, required=True, help='Step definition file or directory')
@click.pass_context
def check(ctx, paths, steps):
    """Report steps that match no step definition"""
    workspace = _load_workspace(ctx)
    ok = _import_steps(workspace, steps)
    result = workspace.import_features(paths)
    ok = ok and not result.errors

    unmatched = workspace.unmatched_steps()
    for step in unmatched:
        feature = step.feature()
        click.echo(f"{feature.filename}: {step.parent.title}: {step.title}")

    if unmatched:
        logger.error(f"{len(unmatched)} unmatched steps")
        sys.exit(1)
    if not ok:
        sys.exit(1)
    logger.info("All steps matched")


if __name__ == '__main__':
    main()
