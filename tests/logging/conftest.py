import logging

import pytest

from k8soperator._cogs.structs.bodies import ResourceMeta


@pytest.fixture(autouse=True)
def _caplog_all_levels(caplog):
    caplog.set_level(0)


@pytest.fixture()
def ns_meta():
    return ResourceMeta(
        id='kinds.api1/v1',
        name='name1',
        namespace='namespace1',
        resource_version='1',
        api_version='api1/v1',
        kind='kind1',
    )


@pytest.fixture()
def cluster_meta():
    return ResourceMeta(
        id='kinds.api1/v1',
        name='name1',
        namespace=None,
        resource_version='1',
        api_version='api1/v1',
        kind='kind1',
    )


@pytest.fixture()
def object_logger_name():
    return 'k8soperator.tests.objects'


@pytest.fixture()
def base_logger(object_logger_name):
    return logging.getLogger(object_logger_name)
