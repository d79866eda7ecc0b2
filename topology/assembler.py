"""Orchestrates the composers into a single deployment topology.

Order of work:

1. validate every local input (no external calls yet)
2. resolve secrets from the parameter store
3. locate the shared network, cluster and listener
4. describe the front-end pipeline, compose the service and its routing

The first failure stops the run and nothing is returned. Domain errors
propagate as raised; anything else coming out of an external collaborator is
wrapped in ``AssemblyAbortedError``.
"""
import os
from typing import Callable, Optional, TypeVar

from attrs import define
from aws_lambda_powertools import Logger

import common.constants as constants
from common.config import BackendConfig, DeploymentConfig, FrontendConfig
from common.stack_context import StackContext
from topology import pipeline as pipeline_descriptor
from topology import routing, service as service_composer
from topology.errors import AssemblyAbortedError, DeploymentError, InvalidSpecError
from topology.locator import InfrastructureLocator
from topology.models import (
    AssemblyWarning,
    ClusterRef,
    DeploymentTopology,
    ListenerRef,
    NetworkRef,
    SecretRef,
)
from topology.secrets import SecretResolver

logger = Logger(
    service="functional-vote-assembler", level=os.getenv("LOG_LEVEL", "INFO").upper()
)

T = TypeVar("T")


@define(slots=True, frozen=True)
class _ResolvedSecrets:
    auth_token: Optional[SecretRef]
    site_key: Optional[SecretRef]
    service_env: dict[str, SecretRef]


@define(slots=True, frozen=True)
class _LocatedInfrastructure:
    network: NetworkRef
    cluster: ClusterRef
    listener: ListenerRef


class StackAssembler:
    def __init__(self, secret_resolver: SecretResolver, locator: InfrastructureLocator) -> None:
        self.secret_resolver = secret_resolver
        self.locator = locator

    def assemble(self, config: DeploymentConfig) -> DeploymentTopology:
        logger.info(
            "Assembling deployment topology",
            env=config.env,
            frontend=config.frontend is not None,
            backend=config.backend is not None,
        )
        context = StackContext(env=config.env)
        self._validate(config)

        secrets = self._stage("secret resolution", lambda: self._resolve_secrets(config))
        located = None
        if config.backend is not None:
            located = self._stage("infrastructure lookup", lambda: self._locate(config.backend))

        pipeline = None
        if config.frontend is not None:
            frontend = config.frontend
            pipeline = pipeline_descriptor.describe(
                source_owner=frontend.source_owner,
                source_repo=frontend.source_repo,
                auth_token=secrets.auth_token,
                domain_name=frontend.domain_name,
                branch_name=frontend.branch_name,
                subdomain_name=frontend.subdomain_name,
                site_key=secrets.site_key,
            )

        service = target_group = rule = None
        warnings: list[AssemblyWarning] = []
        if config.backend is not None and located is not None:
            backend = config.backend
            service = service_composer.ServiceComposer(context).compose(
                image=backend.image,
                port=backend.port,
                cpu=backend.cpu,
                memory_mib=backend.memory_mib,
                env={**dict(backend.environment), **secrets.service_env},
                log_group_name=backend.log_group_name,
                log_retention_days=backend.log_retention_days,
                cluster=located.cluster,
                network=located.network,
                desired_count=backend.desired_count,
                assign_public_ip=backend.assign_public_ip,
            )
            target_group, rule = routing.RoutingComposer(context).route(
                service=service,
                listener=located.listener,
                host_headers=backend.host_headers,
                priority=backend.priority,
                health_check_path=backend.health_check_path,
            )
            warnings.extend(self._existing_resource_warnings(located))

        topology = DeploymentTopology(
            env=config.env,
            pipeline=pipeline,
            service=service,
            target_group=target_group,
            routing_rule=rule,
            warnings=warnings,
        )
        for warning in topology.warnings:
            logger.warning(warning.message, kind=warning.kind, resource=warning.name)
        logger.info("Assembled deployment topology", env=config.env, warnings=len(warnings))
        return topology

    # ---------- stages ----------

    @staticmethod
    def _stage(stage: str, work: Callable[[], T]) -> T:
        try:
            return work()
        except DeploymentError:
            raise
        except Exception as e:
            logger.exception("Assembly aborted", stage=stage)
            raise AssemblyAbortedError(stage, e) from e

    def _resolve_secrets(self, config: DeploymentConfig) -> _ResolvedSecrets:
        auth_token = site_key = None
        if config.frontend is not None:
            auth_token = self.secret_resolver.resolve(config.frontend.auth_token_parameter)
            if config.frontend.site_key_parameter:
                site_key = self.secret_resolver.resolve(config.frontend.site_key_parameter)
        service_env = {}
        if config.backend is not None:
            service_env = self.secret_resolver.resolve_all(dict(config.backend.secret_env))
        return _ResolvedSecrets(auth_token=auth_token, site_key=site_key, service_env=service_env)

    def _locate(self, backend: BackendConfig) -> _LocatedInfrastructure:
        network = self.locator.locate_network(backend.network_name)
        cluster = self.locator.locate_cluster(backend.cluster_name, network)
        listener = self.locator.locate_listener(
            backend.listener_tag_key, backend.listener_tag_value, backend.listener_protocol
        )
        return _LocatedInfrastructure(network=network, cluster=cluster, listener=listener)

    @staticmethod
    def _existing_resource_warnings(located: _LocatedInfrastructure) -> list[AssemblyWarning]:
        return [
            AssemblyWarning(
                kind=ref.lookup.kind.value,
                name=str(ref.lookup),
                message=f"Existing {ref.lookup.kind.value} is referenced and left unmodified",
            )
            for ref in (located.network, located.cluster, located.listener)
        ]

    # ---------- validation ----------

    def _validate(self, config: DeploymentConfig) -> None:
        if config.frontend is None and config.backend is None:
            raise InvalidSpecError("Deployment definition declares neither a frontend nor a backend")
        if config.frontend is not None:
            self._validate_frontend(config.frontend)
        if config.backend is not None:
            self._validate_backend(config.backend)

    @staticmethod
    def _validate_frontend(frontend: FrontendConfig) -> None:
        pipeline_descriptor.validate_source(
            source_owner=frontend.source_owner,
            source_repo=frontend.source_repo,
            domain_name=frontend.domain_name,
            branch_name=frontend.branch_name,
            subdomain_name=frontend.subdomain_name,
            auth_token_parameter=frontend.auth_token_parameter,
        )

    @staticmethod
    def _validate_backend(backend: BackendConfig) -> None:
        if not backend.image.strip():
            raise InvalidSpecError("container image must not be empty")
        service_composer.validate_task_size(backend.cpu, backend.memory_mib)
        service_composer.validate_port(backend.port)
        service_composer.validate_retention(backend.log_retention_days)
        service_composer.validate_desired_count(backend.desired_count)
        service_composer.validate_env(dict(backend.environment))
        routing.validate_priority(backend.priority)
        routing.validate_host_headers(backend.host_headers)
        overlap = sorted(set(dict(backend.environment)) & set(dict(backend.secret_env)))
        if overlap:
            raise InvalidSpecError(
                f"environment variables declared both as literal and secret: {', '.join(overlap)}"
            )
        if constants.PORT_ENV in dict(backend.secret_env):
            raise InvalidSpecError(f"{constants.PORT_ENV} is derived from the container port")
