"""Value objects describing a resolved deployment topology.

Every model is frozen and stores its collections as tuples, so two topologies
assembled from the same inputs compare equal and nothing can be changed after
assembly. Secret values live only inside ``SecretRef`` and are left out of
``repr``, equality and ``to_dict``.
"""
from enum import Enum
from typing import Any, Optional, Union

from attrs import asdict, define, field
from attrs.validators import ge, instance_of, optional

import common.constants as constants


class ResourceKind(str, Enum):
    NETWORK = "network"
    CLUSTER = "cluster"
    LISTENER = "listener"


def _not_sensitive(attribute: Any, _value: Any) -> bool:
    return not attribute.metadata.get("sensitive")


def _serialize(_instance: Any, _attribute: Any, value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


@define(slots=True, frozen=True)
class SecretRef:
    name: str = field(validator=instance_of(str))
    _value: str = field(
        repr=False, eq=False, validator=instance_of(str), metadata={"sensitive": True}
    )

    def reveal(self) -> str:
        """Plaintext value, for the provisioning backend only."""
        return self._value

    def __str__(self) -> str:
        return f"SecretRef({self.name})"


EnvValue = Union[SecretRef, str]


@define(slots=True, frozen=True)
class LookupKey:
    kind: ResourceKind = field(validator=instance_of(ResourceKind))
    key: tuple[str, ...] = field(converter=tuple)

    def __str__(self) -> str:
        return f"{self.kind.value}({', '.join(self.key)})"


@define(slots=True, frozen=True)
class Subnet:
    subnet_id: str = field(validator=instance_of(str))
    availability_zone: str = field(validator=instance_of(str))


def subnet_layout(subnets: tuple[Subnet, ...]) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Zones and subnet ids ordered one subnet per zone at a time.

    Imported VPCs assign subnet ids to zones positionally, so ``a1, b1, a2, b2``
    lines up with zones ``a, b`` where ``a1, a2, b1, b2`` would not.
    """
    by_zone: dict[str, list[str]] = {}
    for subnet in sorted(subnets, key=lambda s: (s.availability_zone, s.subnet_id)):
        by_zone.setdefault(subnet.availability_zone, []).append(subnet.subnet_id)
    zones = tuple(sorted(by_zone))
    depth = max((len(ids) for ids in by_zone.values()), default=0)
    ordered = tuple(
        by_zone[zone][rank] for rank in range(depth) for zone in zones if rank < len(by_zone[zone])
    )
    return zones, ordered


@define(slots=True, frozen=True, kw_only=True)
class NetworkRef:
    lookup: LookupKey
    vpc_id: str = field(validator=instance_of(str))
    public_subnets: tuple[Subnet, ...] = field(converter=tuple, default=())
    private_subnets: tuple[Subnet, ...] = field(converter=tuple, default=())

    @property
    def availability_zones(self) -> tuple[str, ...]:
        return tuple(
            sorted({s.availability_zone for s in self.public_subnets + self.private_subnets})
        )

    def subnets(self, public: bool) -> tuple[Subnet, ...]:
        return self.public_subnets if public else self.private_subnets


@define(slots=True, frozen=True, kw_only=True)
class ClusterRef:
    lookup: LookupKey
    cluster_name: str = field(validator=instance_of(str))
    cluster_arn: str = field(validator=instance_of(str))
    network: NetworkRef


@define(slots=True, frozen=True, kw_only=True)
class ListenerRef:
    lookup: LookupKey
    listener_arn: str = field(validator=instance_of(str))
    load_balancer_arn: str = field(validator=instance_of(str))
    protocol: str = field(validator=instance_of(str))
    port: int = field(validator=instance_of(int))
    security_group_ids: tuple[str, ...] = field(converter=tuple, default=())


@define(slots=True, frozen=True)
class SubdomainMapping:
    branch_name: str
    prefix: str
    domain_name: str

    @property
    def fqdn(self) -> str:
        return f"{self.prefix}.{self.domain_name}" if self.prefix else self.domain_name


@define(slots=True, frozen=True, kw_only=True)
class BuildPipeline:
    source_owner: str
    source_repo: str
    auth_token: SecretRef = field(validator=instance_of(SecretRef))
    root_dir: str
    build_commands: tuple[str, ...] = field(converter=tuple)
    artifact_dir: str
    artifact_globs: tuple[str, ...] = field(converter=tuple)
    cache_paths: tuple[str, ...] = field(converter=tuple)
    branch_name: str
    domain_name: str
    subdomain_name: str
    spa_fallback: bool = True
    site_key: Optional[SecretRef] = field(
        default=None, validator=optional(instance_of(SecretRef))
    )

    @property
    def repository_url(self) -> str:
        return constants.GITHUB_URL.format(owner=self.source_owner, repo=self.source_repo)

    @property
    def branch_mappings(self) -> tuple[SubdomainMapping, ...]:
        return (SubdomainMapping(self.branch_name, self.subdomain_name, self.domain_name),)


@define(slots=True, frozen=True, kw_only=True)
class TaskSpec:
    family: str
    cpu: int = field(validator=instance_of(int))
    memory_mib: int = field(validator=instance_of(int))
    container_name: str
    image: str
    env: tuple[tuple[str, EnvValue], ...] = field(
        converter=lambda items: tuple(sorted(dict(items).items()))
    )
    port: int = field(validator=instance_of(int))
    log_group_name: str
    log_retention_days: int

    @property
    def secrets(self) -> dict[str, SecretRef]:
        return {name: value for name, value in self.env if isinstance(value, SecretRef)}

    @property
    def literals(self) -> dict[str, str]:
        return {name: value for name, value in self.env if isinstance(value, str)}


@define(slots=True, frozen=True, kw_only=True)
class ServiceDeployment:
    service_name: str
    cluster: ClusterRef
    network: NetworkRef
    desired_count: int = field(validator=[instance_of(int), ge(1)])
    task: TaskSpec
    assign_public_ip: bool = True


@define(slots=True, frozen=True, kw_only=True)
class TargetGroup:
    name: str
    port: int
    network: NetworkRef
    protocol: str = constants.TARGET_GROUP_PROTOCOL
    health_check_path: str = constants.DEFAULT_HEALTH_CHECK_PATH


@define(slots=True, frozen=True, kw_only=True)
class RoutingRule:
    priority: int
    host_headers: tuple[str, ...] = field(converter=lambda hosts: tuple(sorted(set(hosts))))
    target_groups: tuple[TargetGroup, ...] = field(converter=tuple)
    listener: ListenerRef


@define(slots=True, frozen=True)
class AssemblyWarning:
    kind: str
    name: str
    message: str


@define(slots=True, frozen=True, kw_only=True)
class DeploymentTopology:
    env: str
    pipeline: Optional[BuildPipeline] = None
    service: Optional[ServiceDeployment] = None
    target_group: Optional[TargetGroup] = None
    routing_rule: Optional[RoutingRule] = None
    warnings: tuple[AssemblyWarning, ...] = field(converter=tuple, default=())

    def __attrs_post_init__(self) -> None:
        triple = (self.service, self.target_group, self.routing_rule)
        if any(part is not None for part in triple) and any(part is None for part in triple):
            raise ValueError(
                "service, target_group and routing_rule must be declared together"
            )

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view with every secret value redacted."""
        return asdict(
            self,
            filter=_not_sensitive,
            value_serializer=_serialize,
        )
