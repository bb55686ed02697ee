"""
Helpers for testing scheduled query rules

Strategies for valid RuleConfigs, example declarations, and an in-memory stand-in for Azure.
"""
import string
from typing import Any, Dict, List, Optional, Tuple

import pytest
from hypothesis.strategies import booleans, builds, dictionaries, fixed_dictionaries, floats, frozensets, integers, just, lists, none, one_of, sampled_from, text
from pydantic import TypeAdapter

from azmonitor.azrest.models import AzureErrorDetails, Req
from azmonitor.monitor import insights
from azmonitor.monitor.schema import AznsAction, Criterion, Dimension, MetricTrigger, RuleConfig, Trigger
from azmonitor.rid import rid
from azmonitor.rid.conftest import az_name, st_resource_base, st_rule
from azmonitor.test.credentials import load_credentials, load_secrets

SUBSCRIPTION = "00000000-0000-0000-0000-000000000000"
DATA_SOURCE_ID = f"/subscriptions/{SUBSCRIPTION}/resourceGroups/rg1/providers/Microsoft.Insights/components/ai1"
WORKSPACE_ID = f"/subscriptions/{SUBSCRIPTION}/resourceGroups/rg1/providers/Microsoft.OperationalInsights/workspaces/ws1"
ACTION_GROUP_ID = f"/subscriptions/{SUBSCRIPTION}/resourceGroups/rg1/providers/Microsoft.Insights/actionGroups/ag1"
RULE_ID = f"/subscriptions/{SUBSCRIPTION}/resourceGroups/rg1/providers/Microsoft.Insights/scheduledQueryRules/r1"


def log_to_metric_raw() -> Dict[str, Any]:
	"""A log-to-metric rule as it would be declared"""
	return {
		"name": "r1",
		"resource_group_name": "rg1",
		"location": "West Europe",
		"description": "test log to metric action",
		"enabled": True,
		"action_type": "LogToMetric",
		"data_source_id": DATA_SOURCE_ID,
		"criteria": [
			{
				"metric_name": "Average_%_Idle_Time",
				"dimension": [
					{
						"name": "InstanceName",
						"operator": "Include",
						"values": [""],
					}
				],
			}
		],
	}


def alerting_raw() -> Dict[str, Any]:
	"""An alerting rule as it would be declared"""
	return {
		"name": "r2",
		"resource_group_name": "rg1",
		"location": "westeurope",
		"description": "test alerting action",
		"enabled": True,
		"action_type": "Alerting",
		"data_source_id": WORKSPACE_ID,
		"query": "d | summarize AggregatedValue=avg(usage_percent) by bin(TimeGenerated, 1h)",
		"query_type": "ResultCount",
		"frequency": 60,
		"time_window": 60,
		"severity": 3,
		"throttling": 120,
		"azns_action": {
			"action_group": [ACTION_GROUP_ID],
			"email_subject": "Custom alert email subject",
		},
		"trigger": [
			{
				"operator": "GreaterThan",
				"threshold": 5000,
				"metric_trigger": {
					"operator": "GreaterThan",
					"threshold": 1,
					"metric_trigger_type": "Total",
					"metric_column": "TimeGenerated",
				},
			}
		],
		"tags": {"environment": "Production"},
	}


def _set_only(cls):
	"""Build a model passing only the arguments which aren't None, like a user leaving them out"""

	def build(**kwargs):
		return cls(**{k: v for k, v in kwargs.items() if v is not None})

	return build


st_text = text(alphabet=list(string.ascii_letters + string.digits + " _-%"), min_size=1, max_size=20)
st_rid_str = (st_resource_base | st_rule).map(rid.serialise)
st_threshold = floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)
st_operator = sampled_from(["GreaterThan", "LessThan", "Equal"])
st_location = sampled_from(["westeurope", "West Europe", "australiaeast", "East US 2"])
st_tags = dictionaries(text(alphabet=list(string.ascii_letters), min_size=1, max_size=10), text(max_size=10), max_size=3)

st_dimension = builds(
	Dimension,
	name=st_text,
	operator=just("Include"),
	values=lists(text(max_size=10), max_size=3).map(tuple),
)
st_criterion = builds(Criterion, metric_name=st_text, dimension=frozensets(st_dimension, min_size=1, max_size=3))
st_metric_trigger = builds(
	MetricTrigger,
	metric_column=st_text,
	metric_trigger_type=sampled_from(["Consecutive", "Total"]),
	operator=st_operator,
	threshold=st_threshold.filter(lambda f: f != 0),
)
st_trigger = builds(_set_only(Trigger), operator=st_operator, threshold=st_threshold, metric_trigger=none() | st_metric_trigger)
st_azns_action = builds(
	_set_only(AznsAction),
	action_group=frozensets(st_rid_str, max_size=2),
	custom_webhook_payload=none() | sampled_from(["{}", '{"key": "value"}', "[1, 2]"]),
	email_subject=none() | st_text,
)

st_log_to_metric = builds(
	_set_only(RuleConfig),
	name=az_name,
	resource_group_name=az_name,
	location=st_location,
	description=none() | text(max_size=30),
	enabled=none() | booleans(),
	action_type=none() | just("LogToMetric"),
	data_source_id=st_rid_str,
	authorized_resources=none() | frozensets(st_rid_str, max_size=2),
	query=none() | text(max_size=30),
	frequency=none() | integers(min_value=5, max_value=1440),
	time_window=none() | integers(min_value=5, max_value=2880),
	criteria=frozensets(st_criterion, max_size=3),
	tags=none() | st_tags,
)
st_alerting = builds(
	_set_only(RuleConfig),
	name=az_name,
	resource_group_name=az_name,
	location=st_location,
	description=none() | text(max_size=30),
	enabled=none() | booleans(),
	action_type=just("Alerting"),
	data_source_id=st_rid_str,
	authorized_resources=none() | frozensets(st_rid_str, max_size=2),
	query=text(min_size=1, max_size=30),
	frequency=integers(min_value=5, max_value=1440),
	time_window=integers(min_value=5, max_value=2880),
	severity=none() | sampled_from([0, 1, 2, 3, 4]),
	throttling=none() | integers(min_value=0, max_value=10000),
	azns_action=st_azns_action,
	trigger=st_trigger.map(lambda t: frozenset([t])),
	tags=none() | st_tags,
)
st_rule_config = one_of(st_log_to_metric, st_alerting)

# What Azure may hold, including rules made elsewhere which could not be declared here.
# Only required wire fields are always present.
st_wire_dimension = fixed_dictionaries({"name": st_text, "operator": just("Include")}, optional={"values": lists(text(max_size=10), max_size=3)})
st_wire_criteria = fixed_dictionaries({"metricName": st_text}, optional={"dimensions": lists(st_wire_dimension, max_size=3)})
st_wire_metric_trigger = fixed_dictionaries(
	{},
	optional={
		"thresholdOperator": st_operator,
		"threshold": st_threshold,
		"metricTriggerType": sampled_from(["Consecutive", "Total"]),
		"metricColumn": st_text,
	},
)
st_wire_trigger = fixed_dictionaries({"thresholdOperator": st_operator, "threshold": st_threshold}, optional={"metricTrigger": st_wire_metric_trigger})
st_wire_azns_action = fixed_dictionaries(
	{},
	optional={
		"actionGroup": lists(st_rid_str, max_size=2),
		"emailSubject": st_text,
		"customWebhookPayload": text(max_size=20),
	},
)
st_wire_alerting = fixed_dictionaries(
	{"odata.type": just(insights.ODATA_ALERTING_ACTION), "trigger": st_wire_trigger},
	optional={
		"severity": sampled_from(["0", "1", "2", "3", "4"]),
		"aznsAction": st_wire_azns_action,
		"throttlingInMin": integers(min_value=0, max_value=100000),
	},
)
st_wire_log_to_metric = fixed_dictionaries({"odata.type": just(insights.ODATA_LOG_TO_METRIC_ACTION)}, optional={"criteria": lists(st_wire_criteria, max_size=3)})
st_wire_source = fixed_dictionaries(
	{"dataSourceId": st_rid_str},
	optional={"query": text(max_size=30), "authorizedResources": lists(st_rid_str, max_size=2), "queryType": just("ResultCount")},
)
st_wire_schedule = fixed_dictionaries({}, optional={"frequencyInMinutes": integers(min_value=1, max_value=100000), "timeWindowInMinutes": integers(min_value=1, max_value=100000)})
st_wire_properties = fixed_dictionaries(
	{"source": st_wire_source, "action": st_wire_alerting | st_wire_log_to_metric},
	optional={
		"description": text(max_size=30),
		"enabled": sampled_from(["true", "false", "True", "False"]),
		"schedule": st_wire_schedule,
		"provisioningState": sampled_from(["Succeeded", "Deploying", "Failed"]),
		"lastUpdatedTime": just("2020-01-02T03:04:05.678Z"),
	},
)
st_remote_rule = builds(
	lambda rule, properties, location, tags: insights.LogSearchRuleResource.model_validate({"id": rid.serialise(rule), "location": location, "properties": properties, **tags}),
	st_rule,
	st_wire_properties,
	st_location,
	fixed_dictionaries({}, optional={"tags": st_tags}),
)


class FakeAzure:
	"""
	An in-memory stand-in for the scheduledQueryRules API, used in place of an AzRest

	Bodies are round-tripped through JSON like they would be on the wire.
	"""

	def __init__(self):
		self.rules: Dict[str, Dict[str, Any]] = {}
		self.calls: List[Req] = []
		self.errors: Dict[str, Tuple[AzureErrorDetails, int]] = {}  # by method, to make the next call of that method fail

	def fail_next(self, method: str, code: str = "InternalServerError", message: str = "something went wrong", status_code: int = 500):
		self.errors[method] = (AzureErrorDetails(code=code, message=message), status_code)

	def call(self, req: Req, deadline=None):
		if deadline is not None:
			deadline.check(req.name)
		self.calls.append(req)
		if req.method in self.errors:
			details, status_code = self.errors.pop(req.method)
			raise details.as_exception(status_code)

		key = req.path.lower()
		if req.method == "PUT":
			stored = req.body.model_dump(mode="json", by_alias=True, exclude_none=True)
			stored.update(id=req.path, name=req.path.rsplit("/", 1)[-1], type="Microsoft.Insights/scheduledQueryRules")
			stored["properties"].update(provisioningState="Succeeded", lastUpdatedTime="2020-01-02T03:04:05.678Z")
			self.rules[key] = stored
			return TypeAdapter(req.ret_t).validate_python(stored)
		if req.method == "GET" and key.endswith("/scheduledqueryrules"):
			return [TypeAdapter(req.ret_t).validate_python({"value": [v]}).value[0] for k, v in self.rules.items() if k.startswith(key + "/")]
		if req.method == "GET":
			if key not in self.rules:
				raise self._not_found(req)
			return TypeAdapter(req.ret_t).validate_python(self.rules[key])
		if req.method == "DELETE":
			if key not in self.rules:
				raise self._not_found(req)
			del self.rules[key]
			return None
		raise NotImplementedError(req.method)

	@staticmethod
	def _not_found(req: Req):
		return AzureErrorDetails(code="ResourceNotFound", message=f"The Resource '{req.path}' was not found.").as_exception(404)

	def methods(self) -> List[str]:
		return [e.method for e in self.calls]


@pytest.fixture
def fake_azure() -> FakeAzure:
	return FakeAzure()


@pytest.fixture
def it_info() -> Optional[Dict]:
	"""Fixture: Bundle of config for integration tests"""
	return load_secrets()["monitor"]


@pytest.fixture
def credential():
	"""Azure credential"""
	return load_credentials()
