import functools
import sys
import types

import click.testing
import pytest

from k8soperator.cli import main

SCRIPT1 = """
import k8soperator

async def setup_fn(operator):
    await operator.watch_resource('example.com', 'v1', 'widgets', on_widget)

def on_widget(event):
    print('Hello from on_widget!')

operator1 = k8soperator.Operator(setup_fn)
"""

SCRIPT2 = """
import k8soperator

async def setup_fn(operator):
    await operator.watch_resource('example.com', 'v1', 'gadgets', on_gadget)

def on_gadget(event):
    print('Hello from on_gadget!')

operator2 = k8soperator.Operator(setup_fn)
"""

SCRIPT0 = """
import k8soperator

async def setup_fn(operator):
    pass
"""


@pytest.fixture(autouse=True)
def srcdir(tmpdir):
    tmpdir.join('handler0.py').write(SCRIPT0)
    tmpdir.join('handler1.py').write(SCRIPT1)
    tmpdir.join('handler2.py').write(SCRIPT2)
    pkgdir = tmpdir.mkdir('package')
    pkgdir.join('__init__.py').write('')
    pkgdir.join('module_1.py').write(SCRIPT1)
    pkgdir.join('module_2.py').write(SCRIPT2)

    sys.path.insert(0, str(tmpdir))
    try:
        with tmpdir.as_cwd():
            yield tmpdir
    finally:
        sys.path.remove(str(tmpdir))


@pytest.fixture(autouse=True)
def clean_modules_cache():
    # Otherwise, the first loaded test-modules remain there forever,
    # preventing 2nd and further tests from passing.
    for key in list(sys.modules.keys()):
        if key.startswith('package'):
            del sys.modules[key]


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def operator():
    from k8soperator import Operator
    return Operator(lambda operator: None)


@pytest.fixture()
def preload(mocker, operator):
    """ A preloader that "finds" one operator regardless of the files/modules. """
    module = types.ModuleType('fake_module')
    module.operator = operator
    return mocker.patch('k8soperator._cogs.helpers.loaders.preload', return_value=[module])


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('k8soperator._core.reactor.running.run')
