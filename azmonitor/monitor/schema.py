"""
Schema for Azure Monitor scheduled query rules

A RuleConfig is the declared state of one rule.
Everything is validated when the RuleConfig is built, so the codec can assume it is well-formed.
Rules read back from Azure are built with `RuleConfig.from_remote`, which skips the checks that only apply to declarations.
Nested blocks are frozen so they can live in sets; order never matters for them.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from azmonitor.rid import rid

FORCE_NEW = {"force_new": True}
COMPUTED = {"computed": True}

MAX_TAGS = 50
MAX_TAG_KEY_LENGTH = 512
MAX_TAG_VALUE_LENGTH = 256

ActionType = Literal["Alerting", "LogToMetric"]
Operator = Literal["GreaterThan", "LessThan", "Equal"]
MetricTriggerType = Literal["Consecutive", "Total"]
Severity = Literal[0, 1, 2, 3, 4]

ALERTING_ONLY = ("azns_action", "trigger", "severity", "throttling")
ALERTING_REQUIRED = ("azns_action", "query", "frequency", "time_window")

BOUNDS = {  # minutes
	"frequency": (5, 1440),
	"time_window": (5, 2880),
	"throttling": (0, 10000),
}

# Validation context for rules read from Azure.
# Azure is the authority on what it holds, so rules about what may be declared are not applied.
REMOTE = {"remote": True}

RE_RESOURCE_GROUP = re.compile(r"^[-\w._()]+$")


def normalise_location(location: str) -> str:
	"""Azure locations are compared without case or spaces: "West Europe" is "westeurope" """
	return location.replace(" ", "").lower()


def _is_set(v: Any) -> bool:
	return v is not None and v != frozenset()


def _is_remote(info: ValidationInfo) -> bool:
	return bool(info.context and info.context.get("remote"))


class Dimension(BaseModel):
	"""A dimension of a metric produced from a log"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	name: str
	operator: Literal["Include"]
	values: Tuple[str, ...]


class Criterion(BaseModel):
	"""The metric a log-to-metric rule produces"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	metric_name: str
	dimension: FrozenSet[Dimension]


class AznsAction(BaseModel):
	"""Action groups to notify when an alert fires"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	action_group: FrozenSet[str]
	custom_webhook_payload: str = "{}"
	email_subject: Optional[str] = None

	@field_validator("custom_webhook_payload")
	@classmethod
	def check_json(cls, v: str, info: ValidationInfo) -> str:
		if _is_remote(info):
			return v
		try:
			json.loads(v)
		except json.JSONDecodeError as e:
			raise ValueError(f"custom_webhook_payload must be valid JSON: {e}") from e
		return v


class MetricTrigger(BaseModel):
	"""Refines a trigger to count breaches of a metric column"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	metric_column: str
	metric_trigger_type: MetricTriggerType
	operator: Operator
	threshold: float

	@field_validator("threshold")
	@classmethod
	def check_nonzero(cls, v: float, info: ValidationInfo) -> float:
		if v == 0 and not _is_remote(info):
			raise ValueError("threshold must not be zero")
		return v


class Trigger(BaseModel):
	"""When an alerting rule fires"""

	model_config = ConfigDict(frozen=True, extra="forbid")

	operator: Operator
	threshold: float
	metric_trigger: Optional[MetricTrigger] = None


class RuleConfig(BaseModel):
	"""The declared state of a scheduled query rule"""

	model_config = ConfigDict(extra="forbid")

	name: str = Field(json_schema_extra=FORCE_NEW)
	resource_group_name: str = Field(json_schema_extra=FORCE_NEW)
	location: str = Field(json_schema_extra=FORCE_NEW)

	description: Optional[str] = None
	enabled: bool = True
	action_type: ActionType = "LogToMetric"

	data_source_id: str
	authorized_resources: FrozenSet[str] = frozenset()
	query: Optional[str] = None
	query_type: Literal["ResultCount"] = "ResultCount"

	frequency: Optional[int] = None  # minutes
	time_window: Optional[int] = None  # minutes
	throttling: Optional[int] = None  # minutes
	severity: Optional[Severity] = None

	criteria: FrozenSet[Criterion] = frozenset()
	azns_action: Optional[AznsAction] = None
	trigger: FrozenSet[Trigger] = Field(default=frozenset(), max_length=1)

	tags: Dict[str, str] = {}

	id: Optional[str] = Field(default=None, json_schema_extra=COMPUTED)
	last_updated_time: Optional[str] = Field(default=None, json_schema_extra=COMPUTED)
	provisioning_state: Optional[str] = Field(default=None, json_schema_extra=COMPUTED)

	@classmethod
	def from_remote(cls, data: Dict[str, Any]) -> RuleConfig:
		"""Build from what Azure holds, which may not satisfy the rules for declaring a rule"""
		return cls.model_validate(data, context=REMOTE)

	@field_validator("name")
	@classmethod
	def check_name(cls, v: str) -> str:
		if not v.strip():
			raise ValueError("name must not be empty")
		return v

	@field_validator("resource_group_name")
	@classmethod
	def check_resource_group_name(cls, v: str) -> str:
		if not 1 <= len(v) <= 90:
			raise ValueError("resource_group_name must be between 1 and 90 characters")
		if not RE_RESOURCE_GROUP.match(v):
			raise ValueError("resource_group_name may only contain alphanumerics, underscores, parentheses, hyphens and periods")
		if v.endswith("."):
			raise ValueError("resource_group_name cannot end in a period")
		return v

	@field_validator("location")
	@classmethod
	def check_location(cls, v: str) -> str:
		location = normalise_location(v)
		if not location:
			raise ValueError("location must not be empty")
		return location

	@field_validator("data_source_id")
	@classmethod
	def check_data_source_id(cls, v: str) -> str:
		rid.validate(v)
		return v

	@field_validator("authorized_resources")
	@classmethod
	def check_authorized_resources(cls, v: FrozenSet[str]) -> FrozenSet[str]:
		for resource in v:
			rid.validate(resource)
		return v

	@field_validator("tags")
	@classmethod
	def check_tags(cls, v: Dict[str, str]) -> Dict[str, str]:
		if len(v) > MAX_TAGS:
			raise ValueError(f"a maximum of {MAX_TAGS} tags can be applied to each resource")
		for k, tag_value in v.items():
			if len(k) > MAX_TAG_KEY_LENGTH:
				raise ValueError(f"the maximum length for a tag key is {MAX_TAG_KEY_LENGTH} characters: {k!r}")
			if len(tag_value) > MAX_TAG_VALUE_LENGTH:
				raise ValueError(f"the maximum length for a tag value is {MAX_TAG_VALUE_LENGTH} characters: {k!r}")
		return v

	@field_validator("frequency", "time_window", "throttling")
	@classmethod
	def check_bounds(cls, v: Optional[int], info: ValidationInfo) -> Optional[int]:
		if v is None or _is_remote(info):
			return v
		low, high = BOUNDS[info.field_name]
		if not low <= v <= high:
			raise ValueError(f"{info.field_name} must be between {low} and {high} minutes")
		return v

	@model_validator(mode="after")
	def check_action(self, info: ValidationInfo) -> RuleConfig:
		if _is_remote(info):
			return self
		if self.action_type == "LogToMetric":
			present = [f for f in ALERTING_ONLY if _is_set(getattr(self, f))]
			if present:
				raise ValueError(f"{', '.join(present)} can only be set when action_type is 'Alerting'")
		else:
			if self.criteria:
				raise ValueError("criteria can only be set when action_type is 'LogToMetric'")
			missing = [f for f in ALERTING_REQUIRED if getattr(self, f) is None]
			if missing:
				raise ValueError(f"{', '.join(missing)} must be set when action_type is 'Alerting'")
			if len(self.trigger) != 1:
				raise ValueError("exactly one trigger must be set when action_type is 'Alerting'")
		return self


@dataclass(frozen=True)
class FieldSpec:
	"""How one field of a RuleConfig is declared"""

	name: str
	type: Any
	required: bool
	default: Any
	force_new: bool
	computed: bool


def fields() -> Dict[str, FieldSpec]:
	"""The declaration of every field of a RuleConfig"""
	specs = {}
	for name, info in RuleConfig.model_fields.items():
		extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
		required = info.is_required()
		specs[name] = FieldSpec(
			name=name,
			type=info.annotation,
			required=required,
			default=None if required else info.get_default(call_default_factory=True),
			force_new=bool(extra.get("force_new", False)),
			computed=bool(extra.get("computed", False)),
		)
	return specs


def changed_fields(old: RuleConfig, new: RuleConfig) -> List[str]:
	"""Names of the declared fields whose values differ. Computed fields are never compared"""
	return [name for name, spec in fields().items() if not spec.computed and getattr(old, name) != getattr(new, name)]


def replacement_fields(old: RuleConfig, new: RuleConfig) -> List[str]:
	"""Names of the changed fields which cannot be updated in place"""
	specs = fields()
	return [name for name in changed_fields(old, new) if specs[name].force_new]
