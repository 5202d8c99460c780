import dataclasses
import urllib.parse
from typing import Any, Iterator, List, Mapping, NewType, Optional, Sequence

# A specific really existing addressable namespace (at least, the one assumed to be so).
NamespaceName = NewType('NamespaceName', str)

# A namespace reference usable in the API calls. `None` means cluster-wide API calls.
Namespace = Optional[NamespaceName]

# A key of a watched resource type in the registries; e.g. "widgets.example.com/v1".
ResourceId = NewType('ResourceId', str)


@dataclasses.dataclass(frozen=True)
class Resource:
    """
    A resource type, either custom or built-in, as addressed in the API URLs:
    by its API group, API version, and plural name.
    """

    group: str
    """
    The resource's API group; e.g. ``"example.com"``, ``"apps"``, ``"batch"``.
    For Core v1 API resources, an empty string: ``""``.
    """

    version: str
    """
    The resource's API version; e.g. ``"v1"``, ``"v1beta1"``, etc.
    """

    plural: str
    """
    The resource's plural name; e.g. ``"pods"``, ``"widgets"``.
    It is used as an API endpoint, together with API group & version.
    """

    def __repr__(self) -> str:
        return self.id

    # Mostly for tests, to be used as `operator.watch_resource(*resource, ...)`
    def __iter__(self) -> Iterator[str]:
        return iter((self.group, self.version, self.plural))

    @property
    def api_version(self) -> str:
        """ As seen in the objects' ``apiVersion`` field: ``group/version`` or ``version``. """
        return f'{self.group}/{self.version}' if self.group else self.version

    @property
    def id(self) -> ResourceId:
        """ The key of the resource type in the registries: ``plural.group/version``. """
        return ResourceId(f'{self.plural}.{self.api_version}')

    def get_url(
            self,
            *,
            server: Optional[str] = None,
            namespace: Namespace = None,
            name: Optional[str] = None,
            subresource: Optional[str] = None,
            params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """
        Build an API URL of the collection, or of one object, or of its subresource.

        Without a namespace, the URL is cluster-wide. Without a server,
        the URL is relative to the server root. The params go to the query.
        """
        if subresource is not None and name is None:
            raise ValueError("Subresources can be used only with specific resources by their name.")

        parts: List[Optional[str]] = [
            '/apis' if self.group else '/api',
            self.group,
            self.version,
            'namespaces' if namespace is not None else None,
            namespace,
            self.plural,
            name,
            subresource,
        ]

        query = urllib.parse.urlencode(params, encoding='utf-8') if params else ''
        path = '/'.join([part for part in parts if part])
        url = path + ('?' if query else '') + query
        return url if server is None else server.rstrip('/') + '/' + url.lstrip('/')


# The API version of the CRDs if not specified in the definition itself.
CRD_DEFAULT_VERSION = 'v1'


def make_crd_resource(version: Optional[str] = None) -> Resource:
    return Resource('apiextensions.k8s.io', version or CRD_DEFAULT_VERSION, 'customresourcedefinitions')


@dataclasses.dataclass(frozen=True)
class Definition:
    """
    A descriptor of a registered custom resource definition.

    Only the fields needed to build the API paths are kept;
    the versions are kept as in the definition (i.e. usually as dicts).
    """
    group: str
    versions: Sequence[Any]
    plural: str
    name: Optional[str] = None

    @property
    def version(self) -> str:
        """ The storage version if marked as such, or the first of the served versions. """
        names: List[str] = []
        for version in self.versions:
            if isinstance(version, Mapping):
                if version.get('storage'):
                    return str(version['name'])
                names.append(str(version['name']))
            else:
                names.append(str(version))
        if not names:
            raise LookupError(f"No versions are defined for {self.plural}.{self.group}.")
        return names[0]

    @property
    def resource(self) -> Resource:
        return Resource(self.group, self.version, self.plural)

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "Definition":
        spec = body.get('spec', {})
        versions = spec.get('versions')
        if versions is None and spec.get('version'):
            versions = [spec['version']]  # legacy apiextensions.k8s.io/v1beta1 definitions
        return cls(
            group=spec.get('group', ''),
            versions=list(versions or []),
            plural=spec.get('names', {}).get('plural', ''),
            name=body.get('metadata', {}).get('name'),
        )
