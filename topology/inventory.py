"""boto3-backed read-only view of the shared infrastructure.

Only ``describe_*`` calls are issued. Subnets are classified with the
``aws-cdk:subnet-type`` tag written by CDK-created VPCs, falling back to
``MapPublicIpOnLaunch`` for VPCs created elsewhere. Isolated subnets have no
route out for image pulls and are left out of the record.
"""
from typing import Any, Optional

import boto3

from topology.locator import ClusterRecord, ListenerRecord, NetworkRecord
from topology.models import Subnet

SUBNET_TYPE_TAG = "aws-cdk:subnet-type"
DESCRIBE_TAGS_BATCH = 20


def _tags(resource: dict[str, Any]) -> dict[str, str]:
    return {tag["Key"]: tag["Value"] for tag in resource.get("Tags", [])}


def _subnet_type(subnet: dict[str, Any]) -> str:
    subnet_type = _tags(subnet).get(SUBNET_TYPE_TAG)
    if subnet_type:
        return subnet_type.lower()
    return "public" if subnet.get("MapPublicIpOnLaunch") else "private"


def _zone_order(subnet: Subnet) -> tuple[str, str]:
    return subnet.availability_zone, subnet.subnet_id


class Boto3Inventory:
    def __init__(self, region: Optional[str] = None, session: Any = None) -> None:
        session = session or boto3.session.Session(region_name=region)
        self.ec2 = session.client("ec2")
        self.ecs = session.client("ecs")
        self.elbv2 = session.client("elbv2")

    # ---------- networks ----------
    def find_networks(self, name: str) -> list[NetworkRecord]:
        response = self.ec2.describe_vpcs(Filters=[{"Name": "tag:Name", "Values": [name]}])
        return [self._network_record(vpc["VpcId"]) for vpc in response.get("Vpcs", [])]

    def _network_record(self, vpc_id: str) -> NetworkRecord:
        response = self.ec2.describe_subnets(Filters=[{"Name": "vpc-id", "Values": [vpc_id]}])
        groups: dict[str, list[Subnet]] = {"public": [], "private": []}
        for subnet in response.get("Subnets", []):
            subnet_type = _subnet_type(subnet)
            if subnet_type in groups:
                groups[subnet_type].append(
                    Subnet(subnet["SubnetId"], subnet["AvailabilityZone"])
                )
        return NetworkRecord(
            vpc_id=vpc_id,
            public_subnets=sorted(groups["public"], key=_zone_order),
            private_subnets=sorted(groups["private"], key=_zone_order),
        )

    # ---------- clusters ----------
    def find_clusters(self, name: str) -> list[ClusterRecord]:
        response = self.ecs.describe_clusters(clusters=[name])
        return [
            ClusterRecord(cluster_name=cluster["clusterName"], cluster_arn=cluster["clusterArn"])
            for cluster in response.get("clusters", [])
            if cluster.get("status") == "ACTIVE"
        ]

    # ---------- listeners ----------
    def find_listeners(
        self, tag_key: str, tag_value: str, protocol: str
    ) -> list[ListenerRecord]:
        load_balancers = {
            lb["LoadBalancerArn"]: lb
            for page in self.elbv2.get_paginator("describe_load_balancers").paginate()
            for lb in page.get("LoadBalancers", [])
            if lb.get("Type") == "application"
        }
        records = []
        for arn in self._tagged_load_balancers(list(load_balancers), tag_key, tag_value):
            security_groups = load_balancers[arn].get("SecurityGroups", [])
            response = self.elbv2.describe_listeners(LoadBalancerArn=arn)
            records.extend(
                ListenerRecord(
                    listener_arn=listener["ListenerArn"],
                    load_balancer_arn=arn,
                    protocol=listener["Protocol"],
                    port=listener["Port"],
                    security_group_ids=security_groups,
                )
                for listener in response.get("Listeners", [])
                if listener.get("Protocol") == protocol
            )
        return records

    def _tagged_load_balancers(
        self, arns: list[str], tag_key: str, tag_value: str
    ) -> list[str]:
        matched = []
        for start in range(0, len(arns), DESCRIBE_TAGS_BATCH):
            batch = arns[start : start + DESCRIBE_TAGS_BATCH]
            response = self.elbv2.describe_tags(ResourceArns=batch)
            matched.extend(
                description["ResourceArn"]
                for description in response.get("TagDescriptions", [])
                if _tags(description).get(tag_key) == tag_value
            )
        return matched
