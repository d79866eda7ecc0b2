import json
from typing import Any, Mapping

import pytest
from aws_cdk.assertions import Match, Template

import common.constants as constants
from governance_checks import assert_log_group_compliance, assert_no_plaintext_secrets
from stack_test_helpers import (
    ContainerSecretTestCase,
    UpdateDeletePolicyTestCase,
    build_template,
    build_topology,
    find_resources_by_type,
    get_single_resource_id,
)
from topology_test_helpers import (
    LISTENER,
    PARAMETERS,
    UNEVEN_VPC,
    VPC,
    FakeInventory,
    build_assembler,
    build_backend_config,
    build_config,
    build_frontend_config,
)

# ----------------------------- Resource count smoke test ------------------------

RESOURCES = [
    ("AWS::Amplify::App", 1),
    ("AWS::Amplify::Branch", 1),
    ("AWS::Amplify::Domain", 1),
    ("AWS::ECS::TaskDefinition", 1),
    ("AWS::ECS::Service", 1),
    ("AWS::ECS::Cluster", 0),
    ("AWS::EC2::VPC", 0),
    ("AWS::EC2::SecurityGroup", 1),
    ("AWS::ElasticLoadBalancingV2::LoadBalancer", 0),
    ("AWS::ElasticLoadBalancingV2::Listener", 0),
    ("AWS::ElasticLoadBalancingV2::TargetGroup", 1),
    ("AWS::ElasticLoadBalancingV2::ListenerRule", 1),
    ("AWS::IAM::Role", 2),
    ("AWS::Logs::LogGroup", 1),
    ("AWS::SSM::Parameter", 0),
]


@pytest.mark.parametrize("resource_type,expected", RESOURCES)
def test_resource_count(template: Template, resource_type: str, expected: int):
    template.resource_count_is(resource_type, expected)


# ------------------- Amplify tests -------------------


def test_amplify_app_properties(template: Template):
    template.has_resource_properties(
        "AWS::Amplify::App",
        {
            "Name": "functional-vote-frontend-app-dev",
            "Repository": "https://github.com/maxrchung/FunctionalVote",
            "OauthToken": {"Ref": Match.any_value()},
            "BuildSpec": Match.string_like_regexp(r"npm run build"),
            "CustomRules": [
                {
                    "Source": constants.SPA_REDIRECT_SOURCE,
                    "Target": "/index.html",
                    "Status": "200",
                }
            ],
            "EnvironmentVariables": [
                {"Name": "RECAPTCHA_PUBLIC_KEY", "Value": {"Ref": Match.any_value()}}
            ],
        },
    )


@pytest.mark.parametrize(
    "fragment",
    ["appRoot: frontend", "npm install", "baseDirectory: build", "node_modules/"],
)
def test_amplify_build_spec_recipe(template: Template, fragment: str):
    template.has_resource_properties(
        "AWS::Amplify::App", {"BuildSpec": Match.string_like_regexp(fragment)}
    )


def test_amplify_branch_properties(template: Template):
    template.has_resource_properties(
        "AWS::Amplify::Branch",
        {
            "BranchName": "master",
            "EnableAutoBuild": True,
            "AppId": {
                "Fn::GetAtt": [
                    Match.string_like_regexp(r".*FunctionalVoteFrontendApp.*"),
                    "AppId",
                ]
            },
        },
    )


def test_amplify_domain_maps_branch_to_subdomain(
    template: Template, json_template: Mapping[str, Any]
):
    template.has_resource_properties(
        "AWS::Amplify::Domain",
        {
            "DomainName": "example.com",
            "SubDomainSettings": [{"BranchName": "master", "Prefix": "app"}],
        },
    )
    domain_id = get_single_resource_id(find_resources_by_type(template, "AWS::Amplify::Domain"))
    branch_id = get_single_resource_id(find_resources_by_type(template, "AWS::Amplify::Branch"))
    assert branch_id in json_template["Resources"][domain_id]["DependsOn"]


# ------------------- ECS tests -------------------


def test_task_definition_properties(template: Template):
    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "Family": "functional-vote-backend-task-dev",
            "Cpu": "256",
            "Memory": "512",
            "NetworkMode": "awsvpc",
            "RequiresCompatibilities": ["FARGATE"],
            "ContainerDefinitions": [
                {
                    "Name": "functional-vote-backend-container-dev",
                    "Image": "maxrchung/functional-vote-backend:1.0.0",
                    "PortMappings": [{"ContainerPort": 4000, "Protocol": "tcp"}],
                    "Environment": [
                        {"Name": "MIX_ENV", "Value": "prod"},
                        {"Name": "PORT", "Value": "4000"},
                    ],
                    "LogConfiguration": {
                        "LogDriver": "awslogs",
                        "Options": Match.object_like(
                            {"awslogs-stream-prefix": "functional-vote-backend-service-dev"}
                        ),
                    },
                }
            ],
        },
    )


CONTAINER_SECRET_CASES = (
    ContainerSecretTestCase(
        id="database_url",
        env_name="DATABASE_URL",
        parameter_name="functional-vote-database-url",
    ),
    ContainerSecretTestCase(
        id="secret_key_base",
        env_name="SECRET_KEY_BASE",
        parameter_name="functional-vote-secret-key-base",
    ),
)


@pytest.mark.parametrize("case", CONTAINER_SECRET_CASES, ids=lambda test: test.id)
def test_container_secrets_reference_parameters(
    template: Template, json_template: Mapping[str, Any], case: ContainerSecretTestCase
):
    template.has_resource_properties(
        "AWS::ECS::TaskDefinition",
        {
            "ContainerDefinitions": [
                {"Secrets": Match.array_with([Match.object_like({"Name": case.env_name})])}
            ]
        },
    )
    assert f"parameter/{case.parameter_name}" in json.dumps(json_template)


def test_service_properties(template: Template):
    template.has_resource_properties(
        "AWS::ECS::Service",
        {
            "ServiceName": "functional-vote-backend-service-dev",
            "Cluster": "shared-cluster",
            "DesiredCount": 1,
            "LaunchType": "FARGATE",
            "NetworkConfiguration": {
                "AwsvpcConfiguration": {
                    "AssignPublicIp": "ENABLED",
                    "Subnets": ["subnet-public-a", "subnet-public-b"],
                }
            },
            "LoadBalancers": [
                {
                    "ContainerName": "functional-vote-backend-container-dev",
                    "ContainerPort": 4000,
                    "TargetGroupArn": {
                        "Ref": Match.string_like_regexp(r".*FunctionalVoteBackendTargetGroup.*")
                    },
                }
            ],
        },
    )


def test_private_service_uses_private_subnets():
    template = build_template(
        build_topology(frontend=False, backend=build_backend_config(assign_public_ip=False))
    )
    template.has_resource_properties(
        "AWS::ECS::Service",
        {
            "NetworkConfiguration": {
                "AwsvpcConfiguration": {
                    "AssignPublicIp": "DISABLED",
                    "Subnets": ["subnet-private-a", "subnet-private-b"],
                }
            }
        },
    )


@pytest.mark.parametrize(
    "assign_public_ip,access,subnets",
    [
        (True, "ENABLED", ["subnet-public-a", "subnet-public-b"]),
        (False, "DISABLED", ["subnet-private-a", "subnet-private-b", "subnet-private-c"]),
    ],
    ids=["public", "private"],
)
def test_shared_vpc_with_uneven_subnet_groups(assign_public_ip, access, subnets):
    assembler = build_assembler(inventory=FakeInventory(networks={"shared-vpc": [UNEVEN_VPC]}))
    topology = assembler.assemble(
        build_config(
            frontend=False, backend=build_backend_config(assign_public_ip=assign_public_ip)
        )
    )

    build_template(topology).has_resource_properties(
        "AWS::ECS::Service",
        {"NetworkConfiguration": {"AwsvpcConfiguration": {"AssignPublicIp": access, "Subnets": subnets}}},
    )


# ------------------- Load balancer tests -------------------


def test_target_group_properties(template: Template):
    template.has_resource_properties(
        "AWS::ElasticLoadBalancingV2::TargetGroup",
        {
            "Name": "fv-backend-tg-dev",
            "Port": 4000,
            "Protocol": "HTTP",
            "TargetType": "ip",
            "VpcId": VPC.vpc_id,
            "HealthCheckPath": "/",
        },
    )


def test_listener_rule_properties(template: Template):
    template.has_resource_properties(
        "AWS::ElasticLoadBalancingV2::ListenerRule",
        {
            "ListenerArn": LISTENER.listener_arn,
            "Priority": 10,
            "Conditions": [
                {"Field": "host-header", "HostHeaderConfig": {"Values": ["api.example.com"]}}
            ],
            "Actions": [
                {
                    "Type": "forward",
                    "TargetGroupArn": {
                        "Ref": Match.string_like_regexp(r".*FunctionalVoteBackendTargetGroup.*")
                    },
                }
            ],
        },
    )


# -------------------- Log Group tests ----------------------------


def test_log_group_properties(template: Template):
    template.has_resource_properties(
        "AWS::Logs::LogGroup",
        {
            "LogGroupName": "/ecs/functional-vote-backend-service-dev",
            "RetentionInDays": 14,
        },
    )
    assert_log_group_compliance(template)


UPDATE_DELETE_POLICY_CASE = [
    UpdateDeletePolicyTestCase(
        id="AWS::Logs::LogGroup", update_policy="Delete", delete_policy="Delete"
    ),
]


@pytest.mark.parametrize("case", UPDATE_DELETE_POLICY_CASE, ids=lambda test: test.id)
def test_resource_level_policies(
    template: Template,
    json_template: Mapping[str, Any],
    case: UpdateDeletePolicyTestCase,
):
    logical_id = get_single_resource_id(find_resources_by_type(template, case.id))

    assert json_template["Resources"][logical_id]["DeletionPolicy"] == case.delete_policy
    assert json_template["Resources"][logical_id]["UpdateReplacePolicy"] == case.update_policy


# -------------------- Secret handling ----------------------------


def test_template_never_contains_secret_values(template: Template):
    assert_no_plaintext_secrets(template, PARAMETERS.values())


# -------------------- Partial topologies ----------------------------


def test_frontend_only_topology_declares_no_backend():
    template = build_template(build_topology(backend=False))
    template.resource_count_is("AWS::Amplify::App", 1)
    template.resource_count_is("AWS::ECS::Service", 0)
    template.resource_count_is("AWS::ElasticLoadBalancingV2::ListenerRule", 0)


def test_backend_only_topology_declares_no_frontend():
    template = build_template(build_topology(frontend=False))
    template.resource_count_is("AWS::Amplify::App", 0)
    template.resource_count_is("AWS::ECS::Service", 1)
    template.resource_count_is("AWS::ElasticLoadBalancingV2::ListenerRule", 1)


def test_frontend_without_site_key_has_no_build_environment():
    template = build_template(
        build_topology(frontend=build_frontend_config(site_key_parameter=None), backend=False)
    )
    app = find_resources_by_type(template, "AWS::Amplify::App")
    props = app[get_single_resource_id(app)]["Properties"]
    assert "EnvironmentVariables" not in props
