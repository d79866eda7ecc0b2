from aws_cdk import (
    CfnOutput,
    Duration,
    Stack,
    aws_amplify as amplify,
    aws_codebuild as codebuild,
    aws_ec2 as ec2,
    aws_ecs as ecs,
    aws_elasticloadbalancingv2 as elbv2,
    aws_ssm as ssm,
)
from constructs import Construct

import common.constants as constants
from common.stack_context import StackContext
from topology.models import (
    BuildPipeline,
    DeploymentTopology,
    ListenerRef,
    NetworkRef,
    RoutingRule,
    SecretRef,
    ServiceDeployment,
    TargetGroup,
    subnet_layout,
)
from topology.pipeline import build_spec


class FunctionalVoteStack(Stack):
    """Declares the resources of an assembled deployment topology.

    Existing infrastructure (VPC, cluster, listener) is imported by attribute and
    never modified. Secrets are passed by parameter name so no plaintext value
    ends up in the synthesized template.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        topology: DeploymentTopology,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self.topology = topology
        self.context = StackContext(scope=self, env=topology.env)

        self.amplify_app = None
        self.service = None
        if topology.pipeline is not None:
            self.amplify_app = self._build_frontend(topology.pipeline)
        if topology.service is not None:
            self.service = self._build_backend(
                topology.service, topology.target_group, topology.routing_rule
            )

    # Front end

    def _build_frontend(self, pipeline: BuildPipeline) -> amplify.CfnApp:
        component = constants.COMPONENT_FRONTEND
        environment_variables = []
        if pipeline.site_key is not None:
            environment_variables.append(
                amplify.CfnApp.EnvironmentVariableProperty(
                    name=constants.FRONTEND_SITE_KEY_ENV,
                    value=self._parameter_value(pipeline.site_key),
                )
            )
        custom_rules = []
        if pipeline.spa_fallback:
            # Redirect traffic to index.html to have correct SPA routing
            custom_rules.append(
                amplify.CfnApp.CustomRuleProperty(
                    source=constants.SPA_REDIRECT_SOURCE,
                    target=constants.SPA_REDIRECT_TARGET,
                    status=constants.SPA_REDIRECT_STATUS,
                )
            )

        app = amplify.CfnApp(
            self,
            self.context.build_resource_id("App", component),
            name=self.context.build_resource_name("app", component),
            repository=pipeline.repository_url,
            oauth_token=self._parameter_value(pipeline.auth_token),
            build_spec=codebuild.BuildSpec.from_object_to_yaml(build_spec(pipeline)).to_build_spec(),
            custom_rules=custom_rules,
            environment_variables=environment_variables or None,
        )

        branches = {}
        for mapping in pipeline.branch_mappings:
            branch = amplify.CfnBranch(
                self,
                self.context.build_resource_id("Branch", component, action=mapping.branch_name),
                app_id=app.attr_app_id,
                branch_name=mapping.branch_name,
                enable_auto_build=True,
            )
            branches[mapping.branch_name] = branch

        domain = amplify.CfnDomain(
            self,
            self.context.build_resource_id("Domain", component),
            app_id=app.attr_app_id,
            domain_name=pipeline.domain_name,
            sub_domain_settings=[
                amplify.CfnDomain.SubDomainSettingProperty(
                    branch_name=mapping.branch_name, prefix=mapping.prefix
                )
                for mapping in pipeline.branch_mappings
            ],
        )
        for branch in branches.values():
            domain.add_dependency(branch)

        CfnOutput(self, "AmplifyDefaultDomain", value=app.attr_default_domain)
        for mapping in pipeline.branch_mappings:
            CfnOutput(
                self,
                self.context.build_resource_id("Url", component, action=mapping.branch_name),
                value=f"https://{mapping.fqdn}",
            )
        return app

    def _parameter_value(self, secret: SecretRef) -> str:
        return ssm.StringParameter.value_for_string_parameter(self, secret.name)

    # Back end

    def _build_backend(
        self, service: ServiceDeployment, target_group: TargetGroup, rule: RoutingRule
    ) -> ecs.FargateService:
        component = constants.COMPONENT_BACKEND
        vpc = self._import_network(service.network, public=service.assign_public_ip)
        cluster = ecs.Cluster.from_cluster_attributes(
            self,
            self.context.build_resource_id("Cluster", component),
            cluster_name=service.cluster.cluster_name,
            cluster_arn=service.cluster.cluster_arn,
            vpc=vpc,
            security_groups=[],
        )
        listener = self._import_listener(rule.listener)

        task = self._build_task_definition(service)
        fargate_service = ecs.FargateService(
            self,
            self.context.build_resource_id("Service", component),
            service_name=service.service_name,
            cluster=cluster,
            task_definition=task,
            desired_count=service.desired_count,
            assign_public_ip=service.assign_public_ip,
            vpc_subnets=ec2.SubnetSelection(
                subnet_type=ec2.SubnetType.PUBLIC
                if service.assign_public_ip
                else ec2.SubnetType.PRIVATE_WITH_EGRESS
            ),
        )

        tg = elbv2.ApplicationTargetGroup(
            self,
            self.context.build_resource_id("TargetGroup", component),
            target_group_name=target_group.name,
            vpc=vpc,
            port=target_group.port,
            protocol=elbv2.ApplicationProtocol[target_group.protocol],
            target_type=elbv2.TargetType.IP,
            targets=[fargate_service],
            health_check=elbv2.HealthCheck(
                path=target_group.health_check_path,
                interval=Duration.seconds(30),
            ),
        )
        elbv2.ApplicationListenerRule(
            self,
            self.context.build_resource_id("ListenerRule", component),
            listener=listener,
            priority=rule.priority,
            conditions=[elbv2.ListenerCondition.host_headers(list(rule.host_headers))],
            target_groups=[tg],
        )
        CfnOutput(self, "ServiceName", value=fargate_service.service_name)
        return fargate_service

    def _build_task_definition(self, service: ServiceDeployment) -> ecs.FargateTaskDefinition:
        component = constants.COMPONENT_BACKEND
        spec = service.task
        task = ecs.FargateTaskDefinition(
            self,
            self.context.build_resource_id("TaskDefinition", component),
            family=spec.family,
            cpu=spec.cpu,
            memory_limit_mib=spec.memory_mib,
        )
        log_group = self.context.build_log_group(
            spec.log_group_name, spec.log_retention_days, component
        )
        task.add_container(
            self.context.build_resource_id("Container", component),
            container_name=spec.container_name,
            image=ecs.ContainerImage.from_registry(spec.image),
            port_mappings=[ecs.PortMapping(container_port=spec.port)],
            environment=spec.literals,
            secrets={
                env_name: ecs.Secret.from_ssm_parameter(
                    ssm.StringParameter.from_secure_string_parameter_attributes(
                        self,
                        self.context.build_resource_id(env_name, component, action="Parameter"),
                        parameter_name=secret.name,
                    )
                )
                for env_name, secret in spec.secrets.items()
            },
            logging=ecs.LogDrivers.aws_logs(
                stream_prefix=service.service_name, log_group=log_group
            ),
        )
        return task

    def _import_network(self, network: NetworkRef, public: bool) -> ec2.IVpc:
        # Only the service subnets are imported; zones are those they cover
        zones, subnet_ids = subnet_layout(network.subnets(public))
        return ec2.Vpc.from_vpc_attributes(
            self,
            self.context.build_resource_id("Network", constants.COMPONENT_BACKEND),
            vpc_id=network.vpc_id,
            availability_zones=list(zones),
            public_subnet_ids=list(subnet_ids) if public else None,
            private_subnet_ids=None if public else list(subnet_ids),
        )

    def _import_listener(self, listener: ListenerRef) -> elbv2.IApplicationListener:
        component = constants.COMPONENT_BACKEND
        security_group = ec2.SecurityGroup.from_security_group_id(
            self,
            self.context.build_resource_id("ListenerSecurityGroup", component),
            listener.security_group_ids[0],
        )
        return elbv2.ApplicationListener.from_application_listener_attributes(
            self,
            self.context.build_resource_id("Listener", component),
            listener_arn=listener.listener_arn,
            security_group=security_group,
        )
