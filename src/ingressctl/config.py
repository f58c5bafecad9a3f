"""Controller settings.

Settings are read from a yaml file. Unless a file is given explicitly it is
picked by environment name: `config/config-<env>.yaml`, where env comes from
the `INGRESSCTL_ENV` environment variable and defaults to `dev`.
"""
import dataclasses
import logging
import os
import pathlib

import yaml

from .exceptions import ConfigError


log = logging.getLogger(__name__)

ENV_VAR = 'INGRESSCTL_ENV'
DEFAULT_ENV = 'dev'
CONFIG_DIR = pathlib.Path('config')


@dataclasses.dataclass
class Settings:
    # Path to a kubeconfig file, in cluster config or ~/.kube/config if unset.
    kubeconfig: str = None
    context: str = None
    # '*' watches all namespaces.
    namespace: str = '*'
    workers: int = 5
    max_retries: int = 10
    base_delay: float = 0.005
    max_delay: float = 1000.0
    qps: float = 10.0
    burst: int = 100
    # Deadline for create/delete calls in seconds.
    api_timeout: float = 30.0
    resync_after: int = None
    annotation: str = 'ingress/http'
    ingress_class: str = 'nginx'
    host: str = 'client-go-demo.com'
    service_port: int = 80

    def __post_init__(self):
        if self.workers < 1:
            raise ConfigError(f'workers must be at least 1, got {self.workers}')
        if self.max_retries < 0:
            raise ConfigError(f'maxRetries can not be negative, got {self.max_retries}')
        if not 0 < self.service_port < 65536:
            raise ConfigError(f'invalid servicePort: {self.service_port}')

    def to_dict(self):
        return {
            _yaml_key(field.name): getattr(self, field.name)
            for field in dataclasses.fields(self)
        }


# yaml key -> Settings field
_ALIASES = {
    'k8sConfig': 'kubeconfig',
}


def _yaml_key(name):
    for alias, field in _ALIASES.items():
        if field == name:
            return alias
    first, *rest = name.split('_')
    return first + ''.join(part.capitalize() for part in rest)


def settings_from_dict(data):
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f'expected a mapping, got {type(data).__name__}')
    names = {_yaml_key(field.name): field.name for field in dataclasses.fields(Settings)}
    types = {field.name: field.type for field in dataclasses.fields(Settings)}
    kwargs = {}
    for key, value in data.items():
        try:
            name = names[key]
        except KeyError:
            raise ConfigError(f'unknown setting: {key}') from None
        if value is None:
            # Explicitly unset, keep the default.
            continue
        expected = types[name]
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if not isinstance(value, expected) or isinstance(value, bool) and expected is not bool:
            raise ConfigError(
                f'{key}: expected {expected.__name__}, got {type(value).__name__}'
            )
        kwargs[name] = value
    return Settings(**kwargs)


def config_path(env=None):
    if env is None:
        env = os.environ.get(ENV_VAR, DEFAULT_ENV)
    return CONFIG_DIR / f'config-{env}.yaml'


def load_settings(path=None, env=None):
    explicit = path is not None
    if path is None:
        path = config_path(env)
    path = pathlib.Path(path)
    log.info('loading settings from %s', path)
    try:
        with path.open() as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        if explicit:
            raise ConfigError(f'config file not found: {path}') from e
        log.info('%s does not exist, using defaults', path)
        data = {}
    except yaml.YAMLError as e:
        raise ConfigError(f'failed to parse {path}: {e}') from e
    return settings_from_dict(data)


def settings_to_yaml(settings):
    return yaml.safe_dump(settings.to_dict(), sort_keys=False)
