"""
All the routines to talk to Kubernetes API.

Beware: this is NOT a Kubernetes client. It is a set of dedicated adapters
specially tailored to do the operator-specific tasks (watching, status updates,
creation of the definitions), not the generic Kubernetes object manipulation.

The operators MUST NOT rely on how the package communicates with the cluster.
"""
