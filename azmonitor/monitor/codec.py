"""
Codec between RuleConfig and the Azure representation of a scheduled query rule

`expand` turns a RuleConfig into the body for Azure, `flatten` turns what Azure returns back into a RuleConfig.
`flatten(expand(c))` gives back `c`, apart from computed fields and the order of things in sets.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from azmonitor.monitor import insights
from azmonitor.monitor.schema import AznsAction, Criterion, RuleConfig, Trigger, normalise_location
from azmonitor.rid import rid

PROVIDER = "Microsoft.Insights"
RES_TYPE = "scheduledQueryRules"


class UnknownActionType(Exception):
	"""Azure returned a rule with an action we don't know how to represent"""

	def __init__(self, odata_type: Optional[str]):
		super().__init__(f"unknown action type in scheduled query rule: {odata_type}")
		self.odata_type = odata_type


@dataclass(frozen=True)
class RuleID:
	"""The identity of a scheduled query rule"""

	subscription: str
	resource_group: str
	name: str

	def __str__(self) -> str:
		sub = rid.Subscription(self.subscription)
		return rid.serialise(rid.Resource(PROVIDER, RES_TYPE, self.name, rid.ResourceGroup(self.resource_group, sub), sub))


def parse_rule_id(s: str) -> RuleID:
	"""Extract the rule from its resource ID. Raises InvalidResourceID for anything else"""
	obj = rid.validate(s)
	if not isinstance(obj, rid.Resource) or obj.rg is None or obj.parent is not None or not obj.is_type(PROVIDER, RES_TYPE):
		raise rid.InvalidResourceID(s, "is not the ID of a scheduled query rule")
	return RuleID(obj.sub.uuid, obj.rg.name, obj.name)


def format_rfc3339(t: datetime) -> str:
	if t.tzinfo is None:
		t = t.replace(tzinfo=timezone.utc)
	return t.isoformat(timespec="seconds").replace("+00:00", "Z")


def expand(config: RuleConfig) -> insights.LogSearchRuleResource:
	"""Build the body for creating or updating a rule"""
	return insights.LogSearchRuleResource(
		location=normalise_location(config.location),
		tags=dict(config.tags),
		properties=insights.LogSearchRule(
			description=config.description,
			enabled="true" if config.enabled else "false",
			source=expand_source(config),
			schedule=expand_schedule(config),
			action=expand_action(config),
		),
	)


def expand_source(config: RuleConfig) -> insights.Source:
	return insights.Source(
		query=config.query,
		authorizedResources=list(config.authorized_resources),
		dataSourceId=config.data_source_id,
		queryType=config.query_type,
	)


def expand_schedule(config: RuleConfig) -> Optional[insights.Schedule]:
	if config.frequency is None and config.time_window is None:
		return None
	return insights.Schedule(frequencyInMinutes=config.frequency, timeWindowInMinutes=config.time_window)


def expand_action(config: RuleConfig) -> Union[insights.AlertingAction, insights.LogToMetricAction]:
	if config.action_type == "Alerting":
		return expand_alerting_action(config)
	return insights.LogToMetricAction(criteria=[expand_criterion(e) for e in config.criteria])


def expand_criterion(criterion: Criterion) -> insights.Criteria:
	return insights.Criteria(
		metricName=criterion.metric_name,
		dimensions=[insights.Dimension(name=d.name, operator=d.operator, values=list(d.values)) for d in criterion.dimension],
	)


def expand_alerting_action(config: RuleConfig) -> insights.AlertingAction:
	# validation guarantees exactly one trigger for alerting rules
	(trigger,) = config.trigger
	return insights.AlertingAction(
		severity=str(config.severity) if config.severity is not None else None,
		aznsAction=expand_azns_action(config.azns_action) if config.azns_action else None,
		throttlingInMin=config.throttling,
		trigger=expand_trigger(trigger),
	)


def expand_azns_action(action: AznsAction) -> insights.AzNsActionGroup:
	return insights.AzNsActionGroup(
		actionGroup=list(action.action_group),
		emailSubject=action.email_subject,
		customWebhookPayload=action.custom_webhook_payload,
	)


def expand_trigger(trigger: Trigger) -> insights.TriggerCondition:
	metric_trigger = None
	if trigger.metric_trigger:
		metric_trigger = insights.LogMetricTrigger(
			thresholdOperator=trigger.metric_trigger.operator,
			threshold=trigger.metric_trigger.threshold,
			metricTriggerType=trigger.metric_trigger.metric_trigger_type,
			metricColumn=trigger.metric_trigger.metric_column,
		)
	return insights.TriggerCondition(thresholdOperator=trigger.operator, threshold=trigger.threshold, metricTrigger=metric_trigger)


def flatten(remote: insights.LogSearchRuleResource, rule_id: Optional[RuleID] = None) -> RuleConfig:
	"""
	Rebuild a RuleConfig from what Azure returned

	Optional fields are only set if Azure returned them, `model_fields_set` on the result says which were.
	The name and resource group come from `rule_id`, or from the ID Azure returned.
	"""
	if rule_id is None:
		if remote.rid is None:
			raise ValueError("cannot identify a scheduled query rule without its ID")
		rule_id = parse_rule_id(remote.rid)

	props = remote.properties
	config: Dict[str, Any] = {
		"name": rule_id.name,
		"resource_group_name": rule_id.resource_group,
		"location": normalise_location(remote.location),
	}
	if remote.rid is not None:
		config["id"] = remote.rid
	if props.lastUpdatedTime is not None:
		config["last_updated_time"] = format_rfc3339(props.lastUpdatedTime)
	if props.provisioningState is not None:
		config["provisioning_state"] = props.provisioningState
	if props.enabled is not None:
		config["enabled"] = props.enabled.lower() == "true"
	if props.description is not None:
		config["description"] = props.description

	config.update(flatten_source(props.source))
	if props.schedule is not None:
		config.update(flatten_schedule(props.schedule))
	config.update(flatten_action(props.action))

	if remote.tags is not None:
		config["tags"] = remote.tags

	return RuleConfig.from_remote(config)


def flatten_source(source: insights.Source) -> Dict[str, Any]:
	out: Dict[str, Any] = {"data_source_id": source.dataSourceId}
	if source.authorizedResources is not None:
		out["authorized_resources"] = source.authorizedResources
	if source.query is not None:
		out["query"] = source.query
	if source.queryType is not None:
		out["query_type"] = source.queryType
	return out


def flatten_schedule(schedule: insights.Schedule) -> Dict[str, Any]:
	out = {}
	if schedule.frequencyInMinutes is not None:
		out["frequency"] = schedule.frequencyInMinutes
	if schedule.timeWindowInMinutes is not None:
		out["time_window"] = schedule.timeWindowInMinutes
	return out


def flatten_action(action: Union[insights.AlertingAction, insights.LogToMetricAction, Dict[str, Any]]) -> Dict[str, Any]:
	if isinstance(action, insights.LogToMetricAction):
		return {
			"action_type": "LogToMetric",
			"criteria": [flatten_criterion(e) for e in action.criteria],
		}
	if isinstance(action, insights.AlertingAction):
		out: Dict[str, Any] = {
			"action_type": "Alerting",
			"trigger": [flatten_trigger(action.trigger)],
		}
		if action.severity is not None:
			out["severity"] = int(action.severity)
		if action.throttlingInMin is not None:
			out["throttling"] = action.throttlingInMin
		if action.aznsAction is not None:
			out["azns_action"] = flatten_azns_action(action.aznsAction)
		return out
	raise UnknownActionType(action.get("odata.type"))


def flatten_criterion(criteria: insights.Criteria) -> Dict[str, Any]:
	return {
		"metric_name": criteria.metricName,
		"dimension": flatten_dimensions(criteria.dimensions),
	}


def flatten_dimensions(dimensions: Optional[List[insights.Dimension]]) -> List[Dict[str, Any]]:
	return [
		{
			"name": d.name,
			"operator": d.operator,
			"values": d.values or [],
		}
		for d in dimensions or []
	]


def flatten_azns_action(action: insights.AzNsActionGroup) -> Dict[str, Any]:
	out: Dict[str, Any] = {"action_group": action.actionGroup or []}
	if action.customWebhookPayload is not None:
		out["custom_webhook_payload"] = action.customWebhookPayload
	if action.emailSubject is not None:
		out["email_subject"] = action.emailSubject
	return out


def flatten_trigger(trigger: insights.TriggerCondition) -> Dict[str, Any]:
	out: Dict[str, Any] = {
		"operator": trigger.thresholdOperator,
		"threshold": trigger.threshold,
	}
	metric_trigger = trigger.metricTrigger
	if metric_trigger is not None:
		flattened = {
			"metric_column": metric_trigger.metricColumn,
			"metric_trigger_type": metric_trigger.metricTriggerType,
			"operator": metric_trigger.thresholdOperator,
			"threshold": metric_trigger.threshold,
		}
		# a metric trigger missing any of these cannot be declared, so it reads as absent
		if all(v is not None for v in flattened.values()):
			out["metric_trigger"] = flattened
	return out
