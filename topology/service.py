from collections import Counter
from typing import Mapping, Union

import common.constants as constants
from common.stack_context import StackContext
from topology.errors import InvalidSpecError
from topology.models import ClusterRef, EnvValue, NetworkRef, SecretRef, ServiceDeployment, TaskSpec


def _as_int(name: str, value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise InvalidSpecError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    raise InvalidSpecError(f"{name} must be an integer, got {value!r}")


def validate_task_size(cpu: Union[int, str], memory_mib: Union[int, str]) -> tuple[int, int]:
    cpu_units = _as_int("cpu", cpu)
    memory = _as_int("memory_mib", memory_mib)
    if cpu_units not in constants.FARGATE_TASK_SIZES:
        accepted = ", ".join(str(size) for size in constants.FARGATE_TASK_SIZES)
        raise InvalidSpecError(f"cpu {cpu_units} is not one of {accepted}")
    if memory not in constants.FARGATE_TASK_SIZES[cpu_units]:
        raise InvalidSpecError(f"memory {memory} MiB is not accepted with cpu {cpu_units}")
    return cpu_units, memory


def validate_port(port: Union[int, str]) -> int:
    value = _as_int("port", port)
    if not constants.MIN_PORT <= value <= constants.MAX_PORT:
        raise InvalidSpecError(
            f"port must be within {constants.MIN_PORT}..{constants.MAX_PORT}, got {value}"
        )
    return value


def validate_retention(days: Union[int, str]) -> int:
    days = _as_int("log_retention_days", days)
    if days not in constants.LOG_RETENTION_DAYS:
        raise InvalidSpecError(f"log retention of {days} days is not accepted by CloudWatch")
    return days


def validate_desired_count(desired_count: int) -> int:
    value = _as_int("desired_count", desired_count)
    if value < 1:
        raise InvalidSpecError(f"desired_count must be at least 1, got {value}")
    return value


def is_sensitive(env_name: str) -> bool:
    upper = env_name.upper()
    return any(marker in upper for marker in constants.SENSITIVE_ENV_MARKERS) or any(
        upper == name or upper.endswith(f"_{name}") for name in constants.SENSITIVE_ENV_NAMES
    )


def validate_subnets(network: NetworkRef, public: bool) -> None:
    """The service subnets must cover their zones evenly to be imported."""
    kind = "public" if public else "private"
    subnets = network.subnets(public)
    if not subnets:
        raise InvalidSpecError(f"network {network.lookup} has no {kind} subnets")
    per_zone = Counter(subnet.availability_zone for subnet in subnets)
    if len(set(per_zone.values())) > 1:
        raise InvalidSpecError(
            f"{kind} subnets of network {network.lookup} are spread unevenly across zones: "
            f"{dict(sorted(per_zone.items()))}"
        )


def validate_env(env: Mapping[str, EnvValue]) -> None:
    for name, value in env.items():
        if isinstance(value, SecretRef):
            continue
        if not isinstance(value, str):
            raise InvalidSpecError(f"environment variable {name} must be a string or SecretRef")
        if is_sensitive(name):
            raise InvalidSpecError(
                f"environment variable {name} is sensitive and must come from the parameter store"
            )


class ServiceComposer:
    """Builds the single-container Fargate service declaration."""

    def __init__(self, context: StackContext, component: str = constants.COMPONENT_BACKEND) -> None:
        self.context = context
        self.component = component

    def compose(
        self,
        image: str,
        port: Union[int, str],
        cpu: Union[int, str],
        memory_mib: Union[int, str],
        env: Mapping[str, EnvValue],
        log_group_name: str,
        log_retention_days: int,
        cluster: ClusterRef,
        network: NetworkRef,
        desired_count: int,
        assign_public_ip: bool = True,
    ) -> ServiceDeployment:
        if not image or not image.strip():
            raise InvalidSpecError("container image must not be empty")
        cpu_units, memory = validate_task_size(cpu, memory_mib)
        container_port = validate_port(port)
        retention = validate_retention(log_retention_days)
        count = validate_desired_count(desired_count)
        validate_env(env)
        validate_subnets(network, assign_public_ip)

        environment = dict(env)
        declared_port = environment.setdefault(constants.PORT_ENV, str(container_port))
        if declared_port != str(container_port):
            raise InvalidSpecError(
                f"{constants.PORT_ENV}={declared_port} does not match container port {container_port}"
            )

        task = TaskSpec(
            family=self.context.build_resource_name("task", self.component),
            cpu=cpu_units,
            memory_mib=memory,
            container_name=self.context.build_resource_name("container", self.component),
            image=image,
            env=environment,
            port=container_port,
            log_group_name=log_group_name or self.context.build_log_group_name(self.component),
            log_retention_days=retention,
        )
        return ServiceDeployment(
            service_name=self.context.build_resource_name("service", self.component),
            cluster=cluster,
            network=network,
            desired_count=count,
            task=task,
            assign_public_ip=assign_public_ip,
        )
