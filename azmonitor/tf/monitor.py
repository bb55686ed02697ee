from __future__ import annotations

from dataclasses import dataclass

from azmonitor.monitor.schema import AznsAction, Criterion, RuleConfig, Trigger
from azmonitor.tf.models import TFResource

RESOURCE_TYPES = {
	"LogToMetric": "azurerm_monitor_scheduled_query_rules_log",
	"Alerting": "azurerm_monitor_scheduled_query_rules_alert",
}


def _optional(**kwargs) -> dict:
	"""Only the arguments which are set"""
	return {k: v for k, v in kwargs.items() if v is not None}


@dataclass
class ScheduledQueryRule(TFResource):
	"""An azurerm scheduled query rule, of whichever kind the config's action needs"""

	name: str
	config: RuleConfig

	@property
	def t(self) -> str:
		return RESOURCE_TYPES[self.config.action_type]

	def render(self) -> dict:
		"""Render for tf-json. Sets are sorted so the output is stable"""
		c = self.config
		rendered = {
			"name": c.name,
			"resource_group_name": c.resource_group_name,
			"location": c.location,
			"data_source_id": c.data_source_id,
			"enabled": c.enabled,
			**_optional(
				description=c.description,
				query=c.query,
				frequency=c.frequency,
				time_window=c.time_window,
			),
			"tags": c.tags,
		}
		if c.authorized_resources:
			rendered["authorized_resources"] = sorted(c.authorized_resources)

		if c.action_type == "LogToMetric":
			rendered["criteria"] = sorted((render_criterion(e) for e in c.criteria), key=lambda e: e["metric_name"])
		else:
			rendered["query_type"] = c.query_type
			rendered.update(_optional(severity=c.severity, throttling=c.throttling))
			if c.azns_action:
				rendered["action"] = [render_azns_action(c.azns_action)]
			rendered["trigger"] = [render_trigger(e) for e in c.trigger]
		return rendered


def render_criterion(criterion: Criterion) -> dict:
	return {
		"metric_name": criterion.metric_name,
		"dimension": [
			{"name": d.name, "operator": d.operator, "values": list(d.values)}
			for d in sorted(criterion.dimension, key=lambda d: (d.name, d.values))
		],
	}


def render_azns_action(action: AznsAction) -> dict:
	return {
		"action_group": sorted(action.action_group),
		"custom_webhook_payload": action.custom_webhook_payload,
		**_optional(email_subject=action.email_subject),
	}


def render_trigger(trigger: Trigger) -> dict:
	rendered: dict = {"operator": trigger.operator, "threshold": trigger.threshold}
	if trigger.metric_trigger:
		m = trigger.metric_trigger
		rendered["metric_trigger"] = [
			{
				"metric_column": m.metric_column,
				"metric_trigger_type": m.metric_trigger_type,
				"operator": m.operator,
				"threshold": m.threshold,
			}
		]
	return rendered
