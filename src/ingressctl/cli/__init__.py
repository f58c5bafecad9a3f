import dataclasses
import logging
import pathlib
import sys

from typing import Optional
from typing_extensions import Annotated

import typer.core

typer.core.rich = None

import typer  # noqa: E402

from .. import config, exceptions  # noqa: E402


app = typer.Typer(add_completion=False)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option('--verbose', '-v')] = False,
    debug: Annotated[bool, typer.Option('--debug', '-d')] = False,
) -> None:
    """
    Keep an Ingress next to every Service annotated for one.
    """
    setattr(ctx, 'obj', {})

    logging.basicConfig(
        level=logging.ERROR,
        format='%(levelname)s: %(module)s: %(message)s',
        stream=sys.stderr,
    )
    log = logging.getLogger('ingressctl')
    log_level = logging.ERROR
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = logging.INFO
    log.setLevel(log_level)
    ctx.obj['log_level'] = log_level
    ctx.obj['debug'] = debug
    ctx.obj['log'] = log


ConfigOption = Annotated[
    Optional[pathlib.Path],
    typer.Option('--config', '-c', help='Settings file, overrides --env.'),
]
EnvOption = Annotated[
    Optional[str],
    typer.Option(
        '--env',
        envvar=config.ENV_VAR,
        help='Load config/config-<env>.yaml.',
    ),
]


def _load(ctx, config_file, env, **overrides):
    try:
        settings = config.load_settings(config_file, env=env)
        overrides = {k: v for k, v in overrides.items() if v is not None}
        if overrides:
            settings = dataclasses.replace(settings, **overrides)
    except exceptions.ConfigError as e:
        ctx.obj['log'].error(e)
        raise typer.Exit(code=2)
    return settings


@app.command(name='run', short_help='Run the controller.')
def run(
    ctx: typer.Context,
    config_file: ConfigOption = None,
    env: EnvOption = None,
    namespace: Annotated[
        Optional[str],
        typer.Option('--namespace', help='Only watch the given namespace.'),
    ] = None,
    all_namespaces: Annotated[
        bool, typer.Option('--all-namespaces', help='Watch all namespaces.')
    ] = False,
    workers: Annotated[Optional[int], typer.Option('--workers', min=1)] = None,
) -> None:
    if all_namespaces:
        namespace = '*'
    settings = _load(ctx, config_file, env, namespace=namespace, workers=workers)

    from ..manager import Manager

    manager = Manager(settings)
    try:
        manager.run(debug=ctx.obj['debug'])
    except exceptions.FatalError as e:
        ctx.obj['log'].error(e)
        raise typer.Exit(code=1)


@app.command(name='config', short_help='Show the effective settings.')
def show_config(
    ctx: typer.Context,
    config_file: ConfigOption = None,
    env: EnvOption = None,
) -> None:
    settings = _load(ctx, config_file, env)
    typer.echo(config.settings_to_yaml(settings), nl=False)


if __name__ == '__main__':
    app()
