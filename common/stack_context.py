from typing import Optional

from attrs import define, field
from aws_cdk import RemovalPolicy, Stack, aws_logs as logs

import common.constants as constants

RETENTION_DAYS = {
    1: logs.RetentionDays.ONE_DAY,
    3: logs.RetentionDays.THREE_DAYS,
    5: logs.RetentionDays.FIVE_DAYS,
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    60: logs.RetentionDays.TWO_MONTHS,
    90: logs.RetentionDays.THREE_MONTHS,
    120: logs.RetentionDays.FOUR_MONTHS,
    150: logs.RetentionDays.FIVE_MONTHS,
    180: logs.RetentionDays.SIX_MONTHS,
    365: logs.RetentionDays.ONE_YEAR,
    400: logs.RetentionDays.THIRTEEN_MONTHS,
    545: logs.RetentionDays.EIGHTEEN_MONTHS,
    731: logs.RetentionDays.TWO_YEARS,
    1096: logs.RetentionDays.THREE_YEARS,
    1827: logs.RetentionDays.FIVE_YEARS,
    2192: logs.RetentionDays.SIX_YEARS,
    2557: logs.RetentionDays.SEVEN_YEARS,
    2922: logs.RetentionDays.EIGHT_YEARS,
    3288: logs.RetentionDays.NINE_YEARS,
    3653: logs.RetentionDays.TEN_YEARS,
}


@define(slots=True, frozen=True)
class StackContext:
    scope: Optional[Stack] = None
    env: str = field(
        default=constants.DEFAULT_ENV,
        metadata={"description": "Deployment environment (dev, staging, prod)"},
    )
    service: str = field(default=constants.SERVICE_NAME, init=False)

    @property
    def aws_region(self) -> str:
        if self.scope is None:
            raise ValueError("StackContext has no scope, unable to resolve AWS region")
        return Stack.of(self.scope).region

    # ---------- naming ----------
    def build_resource_name(
        self, resource_type: str, component: str, action: Optional[str] = None
    ) -> str:
        """Build resource name with optional action.

        Examples:
            - Without action: functional-vote-backend-service-dev
            - With action: functional-vote-backend-web-container-dev
        """
        parts = [self.service, component, action, resource_type, self.env]
        return "-".join(part for part in parts if part).lower()

    def build_resource_id(
        self, resource_type: str, component: str, action: Optional[str] = None
    ) -> str:
        """Build resource ID with optional action.

        Examples:
            - Without action: FunctionalVoteBackendService
            - With action: FunctionalVoteFrontendMasterBranch
        """
        parts = [self.service, component, action, resource_type]
        return "".join(
            word[:1].upper() + word[1:]
            for part in parts
            if part
            for word in part.replace("_", "-").split("-")
        )

    def build_log_group_name(self, component: str) -> str:
        return f"{constants.LOG_GROUP_PREFIX}/{self.build_resource_name('service', component)}"

    def build_log_group(
        self, log_group_name: str, retention_days: int, component: str
    ) -> logs.LogGroup:
        return logs.LogGroup(
            self.scope,
            self.build_resource_id("LogGroup", component),
            log_group_name=log_group_name,
            removal_policy=RemovalPolicy.DESTROY,
            retention=RETENTION_DAYS[retention_days],
        )
