"""kubewait command-line interface.

Every command loads the configuration, builds the initialization context
and the Kubernetes clients, runs one typed waiter and exits with a status
derived from the wait outcome:

    0  succeeded
    1  failed or cancelled
    2  timed out
    3  fatal client error, or the object was never observable
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import click

from kubewait.client.base import ResourceClient
from kubewait.client.kube import build_api_client, client_for
from kubewait.commands import AdminCommand, OcCommand
from kubewait.config import load_config
from kubewait.context import InitContext
from kubewait.errors import SevereWaitError
from kubewait.kinds.authorization import wait_for_user_be_authorized
from kubewait.kinds.deployment_config import wait_for_deployment_config
from kubewait.kinds.events import wait_for_build_event
from kubewait.kinds.image_stream import wait_for_an_image_stream_tag
from kubewait.kinds.job import wait_for_a_job
from kubewait.kinds.pods import POD_PREDICATES, wait_for_pods, wait_until_pod_is_gone
from kubewait.kinds.resource_quota import wait_for_resource_quota_sync
from kubewait.kinds.samples import SAMPLE_LANGUAGES, wait_for_openshift_namespace_image_streams
from kubewait.kinds.service_account import wait_for_service_account
from kubewait.models.config import KubeWaitConfig
from kubewait.models.convergence import ConvergenceResult, Outcome
from kubewait.observability.logging import get_logger, setup_logging
from kubewait.results.build import BuildResult, wait_for_build_result

_logger = get_logger("cli")

EXIT_SUCCEEDED = 0
EXIT_FAILED = 1
EXIT_TIMED_OUT = 2
EXIT_FATAL = 3

EXIT_CODES: dict[Outcome, int] = {
    Outcome.SUCCEEDED: EXIT_SUCCEEDED,
    Outcome.FAILED: EXIT_FAILED,
    Outcome.CANCELLED: EXIT_FAILED,
    Outcome.TIMED_OUT: EXIT_TIMED_OUT,
    Outcome.FATAL_ERROR: EXIT_FATAL,
}

ClientFactory = Callable[[str], ResourceClient]
Waiter = Callable[[ClientFactory, InitContext], Awaitable[ConvergenceResult]]


@asynccontextmanager
async def kube_clients(config: KubeWaitConfig, init: InitContext) -> AsyncIterator[ClientFactory]:
    """Yield a per-kind client factory sharing one ApiClient."""
    api_client = await build_api_client(init.kubeconfig_path())
    try:
        yield lambda kind: client_for(kind, api_client, config.watch.server_timeout_seconds)
    finally:
        await api_client.close()


def make_command(namespace: str, init: InitContext) -> AdminCommand:
    return OcCommand(namespace=namespace, kubeconfig=init.kubeconfig_path() or None)


async def _with_clients(config: KubeWaitConfig, init: InitContext, waiter: Waiter) -> ConvergenceResult:
    async with kube_clients(config, init) as clients:
        return await waiter(clients, init)


def _run(ctx: click.Context, waiter: Waiter) -> None:
    config: KubeWaitConfig = ctx.obj
    with InitContext.from_config(config) as init:
        try:
            result = asyncio.run(_with_clients(config, init, waiter))
        except SevereWaitError as exc:
            _logger.error("build_never_observed", command=ctx.info_name, error=str(exc))
            click.echo(str(exc), err=True)
            ctx.exit(EXIT_FATAL)
    _logger.debug("command_finished", command=ctx.info_name, outcome=result.outcome.value)
    click.echo(result.message)
    ctx.exit(EXIT_CODES[result.outcome])


def _parse_usage(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:
    usage: dict[str, str] = {}
    for value in values:
        name, sep, quantity = value.partition("=")
        if not sep or not name or not quantity:
            raise click.BadParameter(f"expected NAME=QUANTITY, got {value!r}")
        usage[name] = quantity
    return usage


namespace_option = click.option("--namespace", "-n", required=True, help="Namespace of the object")


@click.group()
@click.option("--log-level", default=None, help="Override KUBEWAIT_LOG_LEVEL")
@click.option("--console-logs", is_flag=True, help="Human-readable logs instead of JSON")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None, console_logs: bool) -> None:
    """Wait for OpenShift and Kubernetes resources to converge."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    if log_level:
        config.log.level = log_level.lower()
    setup_logging(config.log.level, json_output=not console_logs)
    ctx.obj = config


@cli.command("build")
@click.argument("name")
@namespace_option
@click.option("--create-timeout", type=float, default=None, help="Seconds to wait for the build to exist")
@click.option("--complete-timeout", type=float, default=None, help="Seconds to wait for the build to finish")
@click.option("--dump-logs", is_flag=True, help="Dump build description and logs unless it succeeded")
@click.pass_context
def build_cmd(
    ctx: click.Context,
    name: str,
    namespace: str,
    create_timeout: float | None,
    complete_timeout: float | None,
    dump_logs: bool,
) -> None:
    """Wait for build NAME to be created and to finish."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        result = BuildResult.for_build(name, namespace, command=make_command(namespace, init))
        await wait_for_build_result(
            clients("Build"),
            result,
            create_timeout=create_timeout or config.timeouts.build_create,
            complete_timeout=complete_timeout or config.timeouts.build_complete,
            create_interval=config.poll.build_create_interval,
            reconnect_delay=config.watch.reconnect_delay,
        )
        if dump_logs and not result.succeeded:
            await result.dump_logs()
        if result.wait_result is None:
            raise click.ClickException(f"no wait result recorded for build {name!r}")
        return result.wait_result

    _run(ctx, waiter)


@cli.command("image-stream-tag")
@click.argument("name")
@click.argument("tag")
@namespace_option
@click.option("--timeout", type=float, default=None)
@click.pass_context
def image_stream_tag_cmd(ctx: click.Context, name: str, tag: str, namespace: str, timeout: float | None) -> None:
    """Wait for image stream NAME to record an image for TAG."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_an_image_stream_tag(
            clients("ImageStream"),
            namespace,
            name,
            tag,
            timeout=timeout or config.timeouts.image_stream_tag,
            reconnect_delay=config.watch.reconnect_delay,
        )

    _run(ctx, waiter)


@cli.command("rollout")
@click.argument("name")
@namespace_option
@click.option("--version", "version", type=int, required=True, help="Deployment version to wait for")
@click.option("--enforce-not-progressing", is_flag=True, help="Fail as soon as Progressing=False")
@click.option("--timeout", type=float, default=None)
@click.pass_context
def rollout_cmd(
    ctx: click.Context,
    name: str,
    namespace: str,
    version: int,
    enforce_not_progressing: bool,
    timeout: float | None,
) -> None:
    """Wait for deploymentconfig NAME to roll out VERSION."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_deployment_config(
            clients("DeploymentConfig"),
            clients("Pod"),
            namespace,
            name,
            version,
            enforce_not_progressing,
            timeout=timeout or config.timeouts.rollout,
            reconnect_delay=config.watch.reconnect_delay,
            command=make_command(namespace, init),
        )

    _run(ctx, waiter)


@cli.command("quota")
@click.argument("name")
@namespace_option
@click.option(
    "--expect",
    "expected",
    multiple=True,
    required=True,
    callback=_parse_usage,
    help="Expected usage as NAME=QUANTITY; repeatable",
)
@click.option("--lower-limit", is_flag=True, help="Wait for usage to drop to the expectation")
@click.option("--timeout", type=float, default=None)
@click.pass_context
def quota_cmd(
    ctx: click.Context,
    name: str,
    namespace: str,
    expected: dict[str, str],
    lower_limit: bool,
    timeout: float | None,
) -> None:
    """Wait for resource quota NAME to report the expected usage."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_resource_quota_sync(
            clients("ResourceQuota"),
            namespace,
            name,
            expected,
            upper_limit=not lower_limit,
            timeout=timeout or config.timeouts.quota,
            reconnect_delay=config.watch.reconnect_delay,
        )

    _run(ctx, waiter)


@cli.command("service-account")
@click.argument("name")
@namespace_option
@click.option("--timeout", type=float, default=None)
@click.pass_context
def service_account_cmd(ctx: click.Context, name: str, namespace: str, timeout: float | None) -> None:
    """Wait for service account NAME to get its image-pull secret."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_service_account(
            clients("ServiceAccount"),
            namespace,
            name,
            timeout=timeout or config.timeouts.service_account,
            interval=config.poll.service_account_interval,
        )

    _run(ctx, waiter)


@cli.command("job")
@click.argument("name")
@namespace_option
@click.option("--timeout", type=float, default=None)
@click.pass_context
def job_cmd(ctx: click.Context, name: str, namespace: str, timeout: float | None) -> None:
    """Wait for job NAME to complete or fail."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_a_job(
            clients("Job"),
            namespace,
            name,
            timeout=timeout or config.timeouts.job,
            interval=config.poll.job_interval,
        )

    _run(ctx, waiter)


@cli.command("pods")
@namespace_option
@click.option("--selector", "-l", "label_selector", required=True, help="Label selector")
@click.option(
    "--predicate",
    type=click.Choice(sorted(POD_PREDICATES)),
    default="running",
    show_default=True,
)
@click.option("--count", type=int, required=True, help="Exact number of matching pods")
@click.option("--timeout", type=float, default=None)
@click.pass_context
def pods_cmd(
    ctx: click.Context,
    namespace: str,
    label_selector: str,
    predicate: str,
    count: int,
    timeout: float | None,
) -> None:
    """Wait until exactly COUNT selected pods satisfy the predicate."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        result = await wait_for_pods(
            clients("Pod"),
            namespace,
            label_selector,
            POD_PREDICATES[predicate],
            count,
            timeout=timeout or config.timeouts.pods,
            interval=config.poll.pod_interval,
        )
        for pod in result.items:
            click.echo(pod.name)
        return result

    _run(ctx, waiter)


@cli.command("pod-gone")
@click.argument("name")
@namespace_option
@click.option("--timeout", type=float, default=None)
@click.pass_context
def pod_gone_cmd(ctx: click.Context, name: str, namespace: str, timeout: float | None) -> None:
    """Wait until pod NAME no longer exists."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_until_pod_is_gone(
            clients("Pod"),
            namespace,
            name,
            timeout=timeout or config.timeouts.pods,
            interval=config.poll.pod_interval,
        )

    _run(ctx, waiter)


@cli.command("samples")
@click.option("--registry-hostname", default="", help="Internal registry host the streams must point at")
@click.option("--language", "languages", multiple=True, help="Image stream to require; repeatable")
@click.option("--timeout", type=float, default=None)
@click.pass_context
def samples_cmd(ctx: click.Context, registry_hostname: str, languages: tuple[str, ...], timeout: float | None) -> None:
    """Wait for the sample image streams in the openshift namespace to import."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_openshift_namespace_image_streams(
            clients("ClusterOperator"),
            clients("ImageStream"),
            languages=languages or SAMPLE_LANGUAGES,
            registry_hostname=registry_hostname,
            timeout=timeout or config.timeouts.samples,
            interval=config.poll.samples_interval,
            command=make_command("openshift", init),
        )

    _run(ctx, waiter)


@cli.command("user-authorized")
@click.argument("user")
@namespace_option
@click.option("--verb", required=True)
@click.option("--resource", required=True)
@click.option("--timeout", type=float, default=None)
@click.pass_context
def user_authorized_cmd(
    ctx: click.Context,
    user: str,
    namespace: str,
    verb: str,
    resource: str,
    timeout: float | None,
) -> None:
    """Wait until USER may perform VERB on RESOURCE in the namespace."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_user_be_authorized(
            clients("SubjectAccessReview"),
            namespace,
            user,
            verb,
            resource,
            timeout=timeout or config.timeouts.user_authorized,
            interval=config.poll.authorization_interval,
        )

    _run(ctx, waiter)


@cli.command("build-event")
@click.argument("build_name")
@namespace_option
@click.option("--reason", required=True, help="Event reason to look for")
@click.option("--message", "expected_message", default=None, help="Exact message the event must carry")
@click.option("--timeout", type=float, default=None)
@click.pass_context
def build_event_cmd(
    ctx: click.Context,
    build_name: str,
    namespace: str,
    reason: str,
    expected_message: str | None,
    timeout: float | None,
) -> None:
    """Wait for an event with REASON on build BUILD_NAME."""
    config: KubeWaitConfig = ctx.obj

    async def waiter(clients: ClientFactory, init: InitContext) -> ConvergenceResult:
        return await wait_for_build_event(
            clients("Event"),
            namespace,
            build_name,
            reason,
            expected_message,
            timeout=timeout or config.timeouts.build_event,
            interval=config.poll.event_interval,
        )

    _run(ctx, waiter)
