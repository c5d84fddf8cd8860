"""Typed waiters, one module per resource kind.

Each module supplies the kind's classifier (a ConvergenceCondition), its
predicates, and a ``wait_for_*`` entry point with the kind's default
deadline and engine.
"""

from kubewait.kinds.authorization import wait_for_user_be_authorized
from kubewait.kinds.build import wait_for_a_build
from kubewait.kinds.deployment_config import wait_for_deployment_config
from kubewait.kinds.events import wait_for_build_event
from kubewait.kinds.image_stream import (
    get_docker_image_reference,
    wait_for_an_image_stream,
    wait_for_an_image_stream_tag,
)
from kubewait.kinds.job import wait_for_a_job
from kubewait.kinds.pods import POD_PREDICATES, get_pod_names_by_filter, wait_for_pods, wait_until_pod_is_gone
from kubewait.kinds.resource_quota import is_usage_synced, wait_for_resource_quota_sync
from kubewait.kinds.samples import wait_for_openshift_namespace_image_streams
from kubewait.kinds.service_account import wait_for_service_account

__all__ = [
    "POD_PREDICATES",
    "get_docker_image_reference",
    "get_pod_names_by_filter",
    "is_usage_synced",
    "wait_for_a_build",
    "wait_for_a_job",
    "wait_for_an_image_stream",
    "wait_for_an_image_stream_tag",
    "wait_for_build_event",
    "wait_for_deployment_config",
    "wait_for_openshift_namespace_image_streams",
    "wait_for_pods",
    "wait_for_resource_quota_sync",
    "wait_for_service_account",
    "wait_for_user_be_authorized",
]
