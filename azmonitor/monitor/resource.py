"""Create, read, update and delete Azure Monitor scheduled query rules"""
from __future__ import annotations

import logging
from typing import List, Optional

import requests

from azmonitor.azrest.azrest import AzOps, AzRest, Deadline
from azmonitor.azrest.models import AzureError
from azmonitor.monitor.codec import RuleID, expand, flatten, parse_rule_id
from azmonitor.monitor.insights import AzScheduledQueryRules, LogSearchRuleResource
from azmonitor.monitor.schema import RuleConfig, replacement_fields
from azmonitor.monitor.settings import Settings

l = logging.getLogger(__name__)

# errors from talking to Azure. A PhaseTimeout is not one of these, it is never wrapped
CLIENT_ERRORS = (AzureError, requests.RequestException)


class ScheduledQueryRuleError(Exception):
	"""
	An operation on scheduled query rules failed

	Names the rule, or only the resource group for operations on all the rules in it.
	"""

	def __init__(self, action: str, rule_id: Optional[RuleID], detail: object = None, resource_group: Optional[str] = None):
		if rule_id is not None:
			resource_group = rule_id.resource_group
			msg = f"error {action} scheduled query rule {rule_id.name!r} (resource group {resource_group!r})"
		else:
			msg = f"error {action} scheduled query rules in resource group {resource_group!r}"
		if detail is not None:
			msg += f": {detail}"
		super().__init__(msg)
		self.rule_id = rule_id
		self.resource_group = resource_group


class ImportAsExistsError(Exception):
	"""A rule we were asked to create already exists, and we mustn't take it over silently"""

	def __init__(self, rid: str):
		super().__init__(f"a resource with the ID {rid!r} already exists - to be managed here it needs to be imported into the state")
		self.rid = rid


class RequiresReplacement(Exception):
	"""The change cannot be made in place, the rule has to be destroyed and recreated"""

	def __init__(self, fields: List[str]):
		super().__init__(f"changing {', '.join(fields)} requires replacing the scheduled query rule")
		self.fields = fields


class ScheduledQueryRules(AzOps):
	"""
	The lifecycle of scheduled query rules

	Every operation runs under a Deadline, which defaults to the timeout for its phase in the Settings.
	The resource ID is the only thing which needs to be kept between operations.
	"""

	def __init__(self, azrest: AzRest, subscription_id: str, settings: Optional[Settings] = None):
		super().__init__(azrest)
		self.subscription_id = subscription_id
		self.settings = settings or Settings()

	def _deadline(self, deadline: Optional[Deadline], phase) -> Deadline:
		return deadline if deadline is not None else self.settings.timeouts.deadline(phase)

	def _get(self, rule_id: RuleID, deadline: Deadline, action: str) -> Optional[LogSearchRuleResource]:
		"""Get a rule, or None if it doesn't exist"""
		try:
			return self.run(AzScheduledQueryRules.Get(rule_id.subscription, rule_id.resource_group, rule_id.name), deadline)
		except CLIENT_ERRORS as e:
			if isinstance(e, AzureError) and e.is_not_found():
				return None
			raise ScheduledQueryRuleError(action, rule_id, e) from e

	def _put(self, rule_id: RuleID, config: RuleConfig, deadline: Deadline) -> RuleConfig:
		req = AzScheduledQueryRules.CreateOrUpdate(rule_id.subscription, rule_id.resource_group, rule_id.name, expand(config))
		try:
			self.run(req, deadline)
		except CLIENT_ERRORS as e:
			raise ScheduledQueryRuleError("creating or updating", rule_id, e) from e

		remote = self._get(rule_id, deadline, "reading back")
		if remote is None or not remote.rid:
			raise ScheduledQueryRuleError("reading back", rule_id, "ID is empty")
		return flatten(remote, rule_id)

	def create(self, config: RuleConfig, deadline: Optional[Deadline] = None) -> RuleConfig:
		"""Create a rule, refusing to adopt an existing one if import protection is on"""
		deadline = self._deadline(deadline, "create")
		rule_id = RuleID(self.subscription_id, config.resource_group_name, config.name)

		if self.settings.features.import_protection:
			existing = self._get(rule_id, deadline, "checking for presence of existing")
			if existing is not None and existing.rid:
				raise ImportAsExistsError(existing.rid)

		l.debug(f"creating scheduled query rule rid={rule_id}")
		return self._put(rule_id, config, deadline)

	def update(self, prior: RuleConfig, config: RuleConfig, deadline: Optional[Deadline] = None) -> RuleConfig:
		"""Update a rule in place. Azure's create is an upsert, so this is the same call"""
		deadline = self._deadline(deadline, "update")
		to_replace = replacement_fields(prior, config)
		if to_replace:
			raise RequiresReplacement(to_replace)

		rule_id = parse_rule_id(prior.id) if prior.id else RuleID(self.subscription_id, config.resource_group_name, config.name)
		l.debug(f"updating scheduled query rule rid={rule_id}")
		return self._put(rule_id, config, deadline)

	def read(self, rid: str, deadline: Optional[Deadline] = None) -> Optional[RuleConfig]:
		"""Read a rule. A rule which no longer exists is not an error, it returns None so it can be removed from state"""
		deadline = self._deadline(deadline, "read")
		rule_id = parse_rule_id(rid)

		remote = self._get(rule_id, deadline, "getting")
		if remote is None:
			l.debug(f"scheduled query rule {rule_id.name!r} was not found in resource group {rule_id.resource_group!r} - removing from state")
			return None
		return flatten(remote, rule_id)

	def delete(self, rid: str, deadline: Optional[Deadline] = None) -> None:
		"""Delete a rule. Deleting a rule which doesn't exist succeeds"""
		deadline = self._deadline(deadline, "delete")
		rule_id = parse_rule_id(rid)

		try:
			self.run(AzScheduledQueryRules.Delete(rule_id.subscription, rule_id.resource_group, rule_id.name), deadline)
		except CLIENT_ERRORS as e:
			if isinstance(e, AzureError) and e.is_not_found():
				l.debug(f"scheduled query rule {rule_id.name!r} was already deleted from resource group {rule_id.resource_group!r}")
				return
			raise ScheduledQueryRuleError("deleting", rule_id, e) from e

	def import_(self, rid: str, deadline: Optional[Deadline] = None) -> RuleConfig:
		"""Bring an existing rule under management by its ID"""
		config = self.read(rid, deadline)
		if config is None:
			raise ScheduledQueryRuleError("importing", parse_rule_id(rid), "it does not exist")
		return config

	def lookup(self, name: str, resource_group: str, deadline: Optional[Deadline] = None) -> RuleConfig:
		"""Find an existing rule by name. Unlike `read`, the rule not existing is an error"""
		deadline = self._deadline(deadline, "read")
		rule_id = RuleID(self.subscription_id, resource_group, name)

		remote = self._get(rule_id, deadline, "getting")
		if remote is None:
			raise ScheduledQueryRuleError("getting", rule_id, "it was not found")
		return flatten(remote, rule_id)

	def list_in_resource_group(self, resource_group: str, deadline: Optional[Deadline] = None) -> List[RuleConfig]:
		"""All the rules in a resource group"""
		deadline = self._deadline(deadline, "read")
		try:
			remotes = self.run(AzScheduledQueryRules.ListByResourceGroup(self.subscription_id, resource_group), deadline)
		except CLIENT_ERRORS as e:
			raise ScheduledQueryRuleError("listing", None, e, resource_group=resource_group) from e
		return [flatten(remote) for remote in remotes]
