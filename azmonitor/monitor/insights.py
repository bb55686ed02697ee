# pylint: disable
# flake8: noqa
"""Microsoft.Insights/scheduledQueryRules, api-version 2018-04-16"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from azmonitor.azrest.models import AzList, ReadOnly, Req

ODATA_PREFIX = "Microsoft.WindowsAzure.Management.Monitoring.Alerts.Models.Microsoft.AppInsights.Nexus.DataContracts.Resources.ScheduledQueryRules."
ODATA_ALERTING_ACTION = ODATA_PREFIX + "AlertingAction"
ODATA_LOG_TO_METRIC_ACTION = ODATA_PREFIX + "LogToMetricAction"


class Dimension(BaseModel):
	"""Specifies the criteria for converting log to metric."""

	name: str
	operator: str
	values: Optional[List[str]] = None


class Criteria(BaseModel):
	"""Specifies the criteria for converting log to metric."""

	metricName: str
	dimensions: Optional[List[Dimension]] = None


class LogMetricTrigger(BaseModel):
	"""A log metrics trigger descriptor."""

	thresholdOperator: Optional[str] = None
	threshold: Optional[float] = None
	metricTriggerType: Optional[str] = None
	metricColumn: Optional[str] = None


class TriggerCondition(BaseModel):
	"""The condition that results in the Log Search rule."""

	thresholdOperator: str
	threshold: float
	metricTrigger: Optional[LogMetricTrigger] = None


class AzNsActionGroup(BaseModel):
	"""Azure action group"""

	actionGroup: Optional[List[str]] = None
	emailSubject: Optional[str] = None
	customWebhookPayload: Optional[str] = None


class AlertingAction(BaseModel):
	"""Specify action need to be taken when rule type is Alert"""

	odata_type: Literal["Microsoft.WindowsAzure.Management.Monitoring.Alerts.Models.Microsoft.AppInsights.Nexus.DataContracts.Resources.ScheduledQueryRules.AlertingAction"] = Field(
		alias="odata.type", default=ODATA_ALERTING_ACTION
	)
	severity: Optional[str] = None
	aznsAction: Optional[AzNsActionGroup] = None
	throttlingInMin: Optional[int] = None
	trigger: TriggerCondition


class LogToMetricAction(BaseModel):
	"""Specify action need to be taken when rule type is converting log to metric"""

	odata_type: Literal["Microsoft.WindowsAzure.Management.Monitoring.Alerts.Models.Microsoft.AppInsights.Nexus.DataContracts.Resources.ScheduledQueryRules.LogToMetricAction"] = Field(
		alias="odata.type", default=ODATA_LOG_TO_METRIC_ACTION
	)
	criteria: List[Criteria] = []


class Source(BaseModel):
	"""Specifies the log search query."""

	query: Optional[str] = None
	authorizedResources: Optional[List[str]] = None
	dataSourceId: str
	queryType: Optional[str] = None


class Schedule(BaseModel):
	"""Defines how often to run the search and the time interval."""

	frequencyInMinutes: Optional[int] = None
	timeWindowInMinutes: Optional[int] = None


class LogSearchRule(BaseModel):
	"""Log Search Rule Definition"""

	description: Optional[str] = None
	enabled: Optional[str] = None  # "true" or "false"
	lastUpdatedTime: ReadOnly[datetime] = None
	provisioningState: ReadOnly[str] = None
	source: Source
	schedule: Optional[Schedule] = None
	# actions this client does not know about are kept raw, so that reading them is an error we can name
	action: Union[AlertingAction, LogToMetricAction, Dict[str, Any]] = Field(union_mode="left_to_right")


class LogSearchRuleResource(BaseModel):
	"""The Log Search Rule resource."""

	rid: ReadOnly[str] = Field(alias="id", default=None)
	name: ReadOnly[str] = None
	type: ReadOnly[str] = None
	location: str
	tags: Optional[Dict[str, str]] = None
	properties: LogSearchRule


LogSearchRuleResourceCollection = AzList[LogSearchRuleResource]


class AzScheduledQueryRules:
	apiv = "2018-04-16"

	@staticmethod
	def CreateOrUpdate(subscriptionId: str, resourceGroupName: str, ruleName: str, parameters: LogSearchRuleResource) -> Req[LogSearchRuleResource]:
		"""Creates or updates an log search rule."""
		r = Req.put(
			name="ScheduledQueryRules.CreateOrUpdate",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Insights/scheduledQueryRules/{ruleName}",
			apiv="2018-04-16",
			body=parameters,
			ret_t=LogSearchRuleResource,
		)

		return r

	@staticmethod
	def Get(subscriptionId: str, resourceGroupName: str, ruleName: str) -> Req[LogSearchRuleResource]:
		"""Gets an Log Search rule"""
		r = Req.get(
			name="ScheduledQueryRules.Get",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Insights/scheduledQueryRules/{ruleName}",
			apiv="2018-04-16",
			ret_t=LogSearchRuleResource,
		)

		return r

	@staticmethod
	def Delete(subscriptionId: str, resourceGroupName: str, ruleName: str) -> Req[None]:
		"""Deletes a Log Search rule"""
		r = Req.delete(
			name="ScheduledQueryRules.Delete",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Insights/scheduledQueryRules/{ruleName}",
			apiv="2018-04-16",
		)

		return r

	@staticmethod
	def ListByResourceGroup(subscriptionId: str, resourceGroupName: str, filter: Optional[str] = None) -> Req[LogSearchRuleResourceCollection]:
		"""List the Log Search rules within a resource group."""
		r = Req.get(
			name="ScheduledQueryRules.ListByResourceGroup",
			path=f"/subscriptions/{subscriptionId}/resourceGroups/{resourceGroupName}/providers/Microsoft.Insights/scheduledQueryRules",
			apiv="2018-04-16",
			ret_t=LogSearchRuleResourceCollection,
		)
		if filter is not None:
			r = r.add_param("$filter", str(filter))

		return r
