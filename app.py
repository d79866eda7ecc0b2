#!/usr/bin/env python3
"""AWS CDK entrypoint for provisioning the Functional Vote deployment.

The deployment definition is read from the ``functional-vote`` context key in
``cdk.json`` (override the environment name with ``-c env=prod``). Secrets and
shared infrastructure are resolved once against the target account before the
stack is synthesized; the stack itself only declares resources.
"""
import os

import aws_cdk as cdk
from aws_cdk import Environment

from common.config import DeploymentConfig
from functional_vote.functional_vote_stack import FunctionalVoteStack
from topology.assembler import StackAssembler
from topology.inventory import Boto3Inventory
from topology.locator import InfrastructureLocator
from topology.secrets import SecretResolver, SsmParameterStore

app = cdk.App()

env = Environment(
    account=os.getenv("CDK_DEFAULT_ACCOUNT"),
    region=os.getenv("CDK_DEFAULT_REGION"),
)

config = DeploymentConfig.from_context(app.node)
assembler = StackAssembler(
    secret_resolver=SecretResolver(SsmParameterStore(region=env.region)),
    locator=InfrastructureLocator(Boto3Inventory(region=env.region)),
)
topology = assembler.assemble(config)

FunctionalVoteStack(
    app,
    f"FunctionalVoteStack-{config.env}",
    topology=topology,
    env=env,
)

app.synth()
