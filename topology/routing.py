from typing import Iterable

import common.constants as constants
from common.stack_context import StackContext
from topology.errors import InvalidSpecError
from topology.models import ListenerRef, RoutingRule, ServiceDeployment, TargetGroup


def validate_priority(priority: int) -> int:
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise InvalidSpecError(f"priority must be an integer, got {priority!r}")
    if priority <= 0:
        raise InvalidSpecError(f"priority must be a positive integer, got {priority}")
    if priority > constants.MAX_RULE_PRIORITY:
        raise InvalidSpecError(
            f"priority must not exceed {constants.MAX_RULE_PRIORITY}, got {priority}"
        )
    return priority


def validate_host_headers(host_headers: Iterable[str]) -> tuple[str, ...]:
    if isinstance(host_headers, str):
        raise InvalidSpecError(f"host headers must be a list, got the string {host_headers!r}")
    host_headers = tuple(host_headers)
    if not all(isinstance(host, str) for host in host_headers):
        raise InvalidSpecError(f"host headers must be strings, got {host_headers!r}")
    hosts = tuple(sorted({host.strip().lower() for host in host_headers if host and host.strip()}))
    if not hosts:
        raise InvalidSpecError("at least one host header is required")
    if len(hosts) > constants.MAX_HOST_HEADERS:
        raise InvalidSpecError(
            f"a rule matches at most {constants.MAX_HOST_HEADERS} host headers, got {len(hosts)}"
        )
    return hosts


class RoutingComposer:
    """Binds a service to a shared listener through a host-header rule.

    One target group per service, one rule per target group. Priority
    uniqueness on the listener is left to the provisioning backend.
    """

    def __init__(self, context: StackContext, component: str = constants.COMPONENT_BACKEND) -> None:
        self.context = context
        self.component = component

    def route(
        self,
        service: ServiceDeployment,
        listener: ListenerRef,
        host_headers: Iterable[str],
        priority: int,
        health_check_path: str = constants.DEFAULT_HEALTH_CHECK_PATH,
    ) -> tuple[TargetGroup, RoutingRule]:
        validate_priority(priority)
        hosts = validate_host_headers(host_headers)

        name = f"{constants.TARGET_GROUP_NAME_PREFIX}-{self.component}-tg-{self.context.env}".lower()
        if len(name) > constants.MAX_TARGET_GROUP_NAME_LENGTH:
            raise InvalidSpecError(
                f"target group name {name!r} exceeds {constants.MAX_TARGET_GROUP_NAME_LENGTH} characters"
            )

        target_group = TargetGroup(
            name=name,
            port=service.task.port,
            network=service.network,
            protocol=constants.TARGET_GROUP_PROTOCOL,
            health_check_path=health_check_path,
        )
        rule = RoutingRule(
            priority=priority,
            host_headers=hosts,
            target_groups=(target_group,),
            listener=listener,
        )
        return target_group, rule
