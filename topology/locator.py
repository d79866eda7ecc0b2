import os
from typing import Protocol

from attrs import define, field
from aws_lambda_powertools import Logger

from topology.errors import AmbiguousResourceError, ResourceNotFoundError
from topology.models import ClusterRef, ListenerRef, LookupKey, NetworkRef, ResourceKind, Subnet

logger = Logger(
    service="functional-vote-locator", level=os.getenv("LOG_LEVEL", "INFO").upper()
)


# ------------------- Inventory records -------------------


@define(slots=True, frozen=True, kw_only=True)
class NetworkRecord:
    vpc_id: str
    public_subnets: tuple[Subnet, ...] = field(converter=tuple, default=())
    private_subnets: tuple[Subnet, ...] = field(converter=tuple, default=())


@define(slots=True, frozen=True, kw_only=True)
class ClusterRecord:
    cluster_name: str
    cluster_arn: str


@define(slots=True, frozen=True, kw_only=True)
class ListenerRecord:
    listener_arn: str
    load_balancer_arn: str
    protocol: str
    port: int
    security_group_ids: tuple[str, ...] = field(converter=tuple, default=())


class Inventory(Protocol):
    def find_networks(self, name: str) -> list[NetworkRecord]: ...

    def find_clusters(self, name: str) -> list[ClusterRecord]: ...

    def find_listeners(
        self, tag_key: str, tag_value: str, protocol: str
    ) -> list[ListenerRecord]: ...


# ------------------- Locator -------------------


class InfrastructureLocator:
    """Resolves shared infrastructure that already exists.

    Lookups always go to the inventory; nothing is cached between runs so a
    topology reflects the infrastructure as it is when assembly happens.
    """

    def __init__(self, inventory: Inventory) -> None:
        self.inventory = inventory

    def locate_network(self, name: str) -> NetworkRef:
        lookup = LookupKey(ResourceKind.NETWORK, (name,))
        record = self._single(lookup, self.inventory.find_networks(name), lambda r: r.vpc_id)
        logger.info("Located network", lookup=str(lookup), vpc_id=record.vpc_id)
        return NetworkRef(
            lookup=lookup,
            vpc_id=record.vpc_id,
            public_subnets=record.public_subnets,
            private_subnets=record.private_subnets,
        )

    def locate_cluster(self, name: str, network: NetworkRef) -> ClusterRef:
        lookup = LookupKey(ResourceKind.CLUSTER, (name,))
        record = self._single(
            lookup, self.inventory.find_clusters(name), lambda r: r.cluster_arn
        )
        logger.info("Located cluster", lookup=str(lookup), cluster_arn=record.cluster_arn)
        return ClusterRef(
            lookup=lookup,
            cluster_name=record.cluster_name,
            cluster_arn=record.cluster_arn,
            network=network,
        )

    def locate_listener(self, tag_key: str, tag_value: str, protocol: str) -> ListenerRef:
        lookup = LookupKey(ResourceKind.LISTENER, (f"{tag_key}={tag_value}", protocol))
        record = self._single(
            lookup,
            self.inventory.find_listeners(tag_key, tag_value, protocol),
            lambda r: r.listener_arn,
        )
        logger.info("Located listener", lookup=str(lookup), listener_arn=record.listener_arn)
        return ListenerRef(
            lookup=lookup,
            listener_arn=record.listener_arn,
            load_balancer_arn=record.load_balancer_arn,
            protocol=record.protocol,
            port=record.port,
            security_group_ids=record.security_group_ids,
        )

    @staticmethod
    def _single(lookup: LookupKey, records: list, identify):
        if not records:
            logger.error("No matching resource", lookup=str(lookup))
            raise ResourceNotFoundError(lookup.kind.value, str(lookup))
        if len(records) > 1:
            matches = [identify(record) for record in records]
            logger.error("Ambiguous resource lookup", lookup=str(lookup), matches=matches)
            raise AmbiguousResourceError(lookup.kind.value, str(lookup), matches)
        return records[0]
