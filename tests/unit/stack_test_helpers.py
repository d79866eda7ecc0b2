from dataclasses import dataclass
from typing import Any, Mapping, Optional

import pytest
from aws_cdk import App
from aws_cdk.assertions import Template

from functional_vote.functional_vote_stack import FunctionalVoteStack
from topology.models import DeploymentTopology
from topology_test_helpers import build_assembler, build_config


# ------------------- Test Case Data Classes -------------------
@dataclass(frozen=True)
class ContainerSecretTestCase:
    id: str
    env_name: str
    parameter_name: str


@dataclass(frozen=True)
class UpdateDeletePolicyTestCase:
    id: str
    update_policy: str
    delete_policy: str


# ------------------- Helper Functions -------------------


def find_resources_by_type(
    template: Template, resource_type: str, props: Optional[dict] = None
) -> Mapping[str, Any]:

    return template.find_resources(resource_type, props=props)


def get_single_resource_id(resources: Mapping[str, Any]) -> str:
    return next(iter(resources))


def build_topology(**config_overrides: Any) -> DeploymentTopology:
    return build_assembler().assemble(build_config(**config_overrides))


def build_template(
    topology: Optional[DeploymentTopology] = None,
    stack_id: str = "TestFunctionalVoteStack",
) -> Template:
    app = App()
    stack = FunctionalVoteStack(app, stack_id, topology=topology or build_topology())
    return Template.from_stack(stack)


# ------------------- Pytest Fixtures -------------------


@pytest.fixture
def template() -> Template:
    return build_template()


@pytest.fixture
def json_template(template: Template) -> Mapping[str, Any]:
    return template.to_json()
