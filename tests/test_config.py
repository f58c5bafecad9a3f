import pytest
import yaml

from ingressctl.config import (
    Settings,
    config_path,
    load_settings,
    settings_from_dict,
    settings_to_yaml,
)
from ingressctl.exceptions import ConfigError


def test_defaults():
    settings = Settings()
    assert settings.workers == 5
    assert settings.max_retries == 10
    assert settings.annotation == 'ingress/http'
    assert settings.service_port == 80
    assert settings.namespace == '*'


def test_camel_case_keys():
    settings = settings_from_dict({
        'k8sConfig': '/tmp/kubeconfig',
        'maxRetries': 3,
        'ingressClass': 'traefik',
        'baseDelay': 1,
        'resyncAfter': 60,
    })
    assert settings.kubeconfig == '/tmp/kubeconfig'
    assert settings.max_retries == 3
    assert settings.ingress_class == 'traefik'
    assert settings.base_delay == 1.0
    assert isinstance(settings.base_delay, float)
    assert settings.resync_after == 60


@pytest.mark.parametrize('data', [
    {'unknown': 1},
    {'workers': 'five'},
    {'workers': True},
    {'servicePort': 1.5},
    {'workers': 0},
    {'servicePort': 70000},
    ['workers'],
])
def test_invalid_settings(data):
    with pytest.raises(ConfigError):
        settings_from_dict(data)


def test_config_path_from_environment(monkeypatch):
    monkeypatch.delenv('INGRESSCTL_ENV', raising=False)
    assert config_path().name == 'config-dev.yaml'
    monkeypatch.setenv('INGRESSCTL_ENV', 'test')
    assert config_path().name == 'config-test.yaml'
    assert config_path('nj').name == 'config-nj.yaml'


def test_load_settings_by_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / 'config').mkdir()
    (tmp_path / 'config' / 'config-test.yaml').write_text('workers: 2\nnamespace: default\n')
    settings = load_settings(env='test')
    assert settings.workers == 2
    assert settings.namespace == 'default'


def test_missing_implicit_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_settings(env='dev') == Settings()


def test_missing_explicit_file_is_an_error(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(tmp_path / 'missing.yaml')


def test_unparsable_file(tmp_path):
    path = tmp_path / 'broken.yaml'
    path.write_text('workers: [1\n')
    with pytest.raises(ConfigError):
        load_settings(path)


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / 'empty.yaml'
    path.write_text('')
    assert load_settings(path) == Settings()


def test_settings_to_yaml_can_be_loaded_again(tmp_path):
    settings = Settings(workers=7, kubeconfig='/etc/kubeconfig')
    path = tmp_path / 'settings.yaml'
    path.write_text(settings_to_yaml(settings))
    assert 'k8sConfig' in yaml.safe_load(path.read_text())
    assert load_settings(path) == settings
