import pytest

from k8soperator._cogs.structs.references import Definition, Resource, make_crd_resource


def test_creation_with_no_args():
    with pytest.raises(TypeError):
        Resource()


def test_creation_with_all_kwargs():
    resource = Resource(
        group='group',
        version='version',
        plural='plural',
    )
    assert resource.group == 'group'
    assert resource.version == 'version'
    assert resource.plural == 'plural'


def test_unpacking_into_the_arguments():
    group, version, plural = Resource('example.com', 'v1', 'widgets')
    assert (group, version, plural) == ('example.com', 'v1', 'widgets')


@pytest.mark.parametrize('group, version, expected', [
    ('example.com', 'v1', 'example.com/v1'),
    ('', 'v1', 'v1'),
])
def test_api_version(group, version, expected):
    resource = Resource(group, version, 'plural')
    assert resource.api_version == expected


@pytest.mark.parametrize('group, version, expected', [
    ('example.com', 'v1', 'widgets.example.com/v1'),
    ('', 'v1', 'widgets.v1'),
])
def test_id_and_repr(group, version, expected):
    resource = Resource(group, version, 'widgets')
    assert resource.id == expected
    assert repr(resource) == expected


def test_url_of_a_custom_resource_list_clusterwide():
    resource = Resource('example.com', 'v1', 'widgets')
    url = resource.get_url()
    assert url == '/apis/example.com/v1/widgets'


def test_url_of_a_custom_resource_list_in_a_namespace():
    resource = Resource('example.com', 'v1', 'widgets')
    url = resource.get_url(namespace='ns1')
    assert url == '/apis/example.com/v1/namespaces/ns1/widgets'


def test_url_of_a_custom_resource_status():
    resource = Resource('example.com', 'v1', 'widgets')
    url = resource.get_url(namespace='ns1', name='foo', subresource='status')
    assert url == '/apis/example.com/v1/namespaces/ns1/widgets/foo/status'


def test_url_of_a_core_resource():
    resource = Resource('', 'v1', 'pods')
    url = resource.get_url(namespace='ns1', name='pod1')
    assert url == '/api/v1/namespaces/ns1/pods/pod1'


def test_url_with_params():
    resource = Resource('example.com', 'v1', 'widgets')
    url = resource.get_url(params={'watch': 'true', 'timeoutSeconds': '10'})
    assert url == '/apis/example.com/v1/widgets?watch=true&timeoutSeconds=10'


def test_url_with_a_server():
    resource = Resource('example.com', 'v1', 'widgets')
    url = resource.get_url(server='https://fake-host/', namespace='ns1')
    assert url == 'https://fake-host/apis/example.com/v1/namespaces/ns1/widgets'


def test_url_of_a_subresource_without_a_name_fails():
    resource = Resource('example.com', 'v1', 'widgets')
    with pytest.raises(ValueError):
        resource.get_url(subresource='status')


@pytest.mark.parametrize('version, expected', [
    (None, '/apis/apiextensions.k8s.io/v1/customresourcedefinitions'),
    ('v1beta1', '/apis/apiextensions.k8s.io/v1beta1/customresourcedefinitions'),
])
def test_crd_resource(version, expected):
    resource = make_crd_resource(version)
    assert resource.get_url() == expected


def test_definition_from_a_body_with_the_storage_version():
    definition = Definition.from_body({
        'metadata': {'name': 'widgets.example.com'},
        'spec': {
            'group': 'example.com',
            'names': {'plural': 'widgets'},
            'versions': [
                {'name': 'v1beta1', 'served': True, 'storage': False},
                {'name': 'v1', 'served': True, 'storage': True},
            ],
        },
    })
    assert definition.name == 'widgets.example.com'
    assert definition.group == 'example.com'
    assert definition.plural == 'widgets'
    assert definition.version == 'v1'
    assert definition.resource == Resource('example.com', 'v1', 'widgets')


def test_definition_from_a_body_without_the_storage_version():
    definition = Definition.from_body({
        'spec': {
            'group': 'example.com',
            'names': {'plural': 'widgets'},
            'versions': [{'name': 'v1alpha1'}, {'name': 'v1alpha2'}],
        },
    })
    assert definition.name is None
    assert definition.version == 'v1alpha1'


def test_definition_from_a_legacy_body():
    definition = Definition.from_body({
        'spec': {
            'group': 'example.com',
            'names': {'plural': 'widgets'},
            'version': 'v1beta1',
        },
    })
    assert definition.version == 'v1beta1'


def test_definition_without_versions():
    definition = Definition.from_body({'spec': {'group': 'example.com', 'names': {'plural': 'widgets'}}})
    with pytest.raises(LookupError):
        definition.version


def test_definitions_of_the_same_body_are_equal():
    body = {'spec': {'group': 'example.com', 'names': {'plural': 'widgets'}, 'versions': [{'name': 'v1'}]}}
    assert Definition.from_body(body) == Definition.from_body(body)
