"""Deployment definition loaded from the ``functional-vote`` CDK context key.

Example ``cdk.json`` context::

    "functional-vote": {
        "env": "prod",
        "frontend": {"source_owner": "...", "source_repo": "...", ...},
        "backend": {"image": "...", "network_name": "...", ...}
    }
"""
from typing import Any, Mapping, Optional, Union

from attrs import define, field
from attrs.validators import deep_iterable, instance_of, optional
from constructs import Node

import common.constants as constants
from topology.errors import InvalidSpecError


def _hosts(hosts: Any) -> tuple[str, ...]:
    if isinstance(hosts, str):
        raise TypeError(f"host_headers must be a list of host names, got {hosts!r}")
    return tuple(hosts)


def _pairs(mapping: Union[Mapping[str, str], tuple]) -> tuple[tuple[str, str], ...]:
    return tuple(sorted(dict(mapping).items()))


@define(slots=True, frozen=True, kw_only=True)
class FrontendConfig:
    source_owner: str = field(validator=instance_of(str))
    source_repo: str = field(validator=instance_of(str))
    domain_name: str = field(validator=instance_of(str))
    subdomain_name: str = field(validator=instance_of(str))
    branch_name: str = field(default="master", validator=instance_of(str))
    auth_token_parameter: str = field(
        default=constants.DEFAULT_AUTH_TOKEN_PARAMETER, validator=instance_of(str)
    )
    site_key_parameter: Optional[str] = field(default=None, validator=optional(instance_of(str)))


@define(slots=True, frozen=True, kw_only=True)
class BackendConfig:
    image: str = field(validator=instance_of(str))
    network_name: str = field(validator=instance_of(str))
    cluster_name: str = field(validator=instance_of(str))
    listener_tag_value: str = field(validator=instance_of(str))
    host_headers: tuple[str, ...] = field(
        converter=_hosts, validator=deep_iterable(member_validator=instance_of(str))
    )
    priority: int = field(validator=instance_of(int))
    port: int = field(default=constants.DEFAULT_PORT)
    cpu: Union[int, str] = field(default=constants.DEFAULT_CPU)
    memory_mib: Union[int, str] = field(default=constants.DEFAULT_MEMORY_MIB)
    desired_count: int = field(default=constants.DEFAULT_DESIRED_COUNT)
    assign_public_ip: bool = field(default=True, validator=instance_of(bool))
    secret_env: tuple[tuple[str, str], ...] = field(
        factory=tuple,
        converter=_pairs,
        metadata={"description": "Container env name -> SSM parameter name"},
    )
    environment: tuple[tuple[str, str], ...] = field(factory=tuple, converter=_pairs)
    log_group_name: Optional[str] = field(default=None, validator=optional(instance_of(str)))
    log_retention_days: int = field(default=constants.DEFAULT_LOG_RETENTION_DAYS)
    listener_tag_key: str = field(default=constants.DEFAULT_LISTENER_TAG_KEY)
    listener_protocol: str = field(default=constants.DEFAULT_LISTENER_PROTOCOL)
    health_check_path: str = field(default=constants.DEFAULT_HEALTH_CHECK_PATH)


@define(slots=True, frozen=True, kw_only=True)
class DeploymentConfig:
    env: str = field(default=constants.DEFAULT_ENV, validator=instance_of(str))
    frontend: Optional[FrontendConfig] = field(
        default=None, validator=optional(instance_of(FrontendConfig))
    )
    backend: Optional[BackendConfig] = field(
        default=None, validator=optional(instance_of(BackendConfig))
    )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DeploymentConfig":
        try:
            frontend = data.get("frontend")
            backend = data.get("backend")
            return cls(
                env=data.get("env", constants.DEFAULT_ENV),
                frontend=FrontendConfig(**frontend) if frontend else None,
                backend=BackendConfig(**backend) if backend else None,
            )
        except (TypeError, ValueError) as e:
            raise InvalidSpecError(f"Invalid deployment definition: {e}") from e

    @classmethod
    def from_context(cls, node: Node) -> "DeploymentConfig":
        data = node.try_get_context(constants.CONTEXT_KEY)
        if not data:
            raise InvalidSpecError(f"Missing '{constants.CONTEXT_KEY}' CDK context")
        data = dict(data)
        env = node.try_get_context("env")
        if env:
            data["env"] = env
        return cls.from_dict(data)
