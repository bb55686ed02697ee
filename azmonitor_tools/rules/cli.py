"""Manage Azure Monitor scheduled query rules from declarations in files"""
import json
import logging
from pathlib import Path
from typing import Optional

import click
import yaml
from azure.identity import DefaultAzureCredential

from azmonitor.monitor.codec import RuleID, parse_rule_id
from azmonitor.monitor.resource import ImportAsExistsError, ScheduledQueryRules
from azmonitor.monitor.schema import RuleConfig
from azmonitor.monitor.settings import Settings
from azmonitor.tf.models import Terraform
from azmonitor.tf.monitor import ScheduledQueryRule


def load_config(path: Path) -> RuleConfig:
	"""Load a RuleConfig from a YAML or JSON file"""
	with open(path, mode="r", encoding="utf-8") as f:
		return RuleConfig.model_validate(yaml.safe_load(f))


def connect(subscription: Optional[str]) -> ScheduledQueryRules:
	settings = Settings()
	subscription_id = subscription or settings.subscription_id
	if not subscription_id:
		raise click.UsageError("a subscription is needed, pass --subscription or set AZMONITOR_SUBSCRIPTION_ID")
	az = settings.azrest(DefaultAzureCredential())
	return ScheduledQueryRules(az, subscription_id, settings)


def echo_config(config: RuleConfig):
	click.echo(config.model_dump_json(indent=2))


subscription_option = click.option("--subscription", help="The subscription the rules are in. Defaults to AZMONITOR_SUBSCRIPTION_ID.")


@click.group()
@click.option("--verbose", is_flag=True, help="Log requests to Azure.")
def cli(verbose: bool):
	"""Manage Azure Monitor scheduled query rules"""
	logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--adopt", is_flag=True, help="Update the rule if it already exists, instead of refusing to.")
@subscription_option
def apply(file: Path, adopt: bool, subscription: Optional[str]):
	"""
	Create the rule declared in FILE

	A rule which already exists is only taken over and updated with --adopt.
	"""
	config = load_config(file)
	rules = connect(subscription)

	if not adopt:
		try:
			echo_config(rules.create(config))
		except ImportAsExistsError as e:
			raise click.ClickException(f"{e}. Pass --adopt to update it") from e
		return

	prior = rules.read(str(RuleID(rules.subscription_id, config.resource_group_name, config.name)))
	if prior is None:
		echo_config(rules.create(config))
	else:
		echo_config(rules.update(prior, config))


@cli.command()
@click.argument("resource_id")
@subscription_option
def show(resource_id: str, subscription: Optional[str]):
	"""Show the rule with RESOURCE_ID"""
	rules = connect(subscription or parse_rule_id(resource_id).subscription)
	echo_config(rules.import_(resource_id))


@cli.command()
@click.option("--name", required=True, help="The name of the rule.")
@click.option("--resource-group", required=True, help="The resource group of the rule.")
@subscription_option
def lookup(name: str, resource_group: str, subscription: Optional[str]):
	"""Find a rule by its name"""
	rules = connect(subscription)
	echo_config(rules.lookup(name, resource_group))


@cli.command(name="list")
@click.option("--resource-group", required=True, help="The resource group to list rules in.")
@subscription_option
def list_rules(resource_group: str, subscription: Optional[str]):
	"""List the rules in a resource group"""
	rules = connect(subscription)
	configs = rules.list_in_resource_group(resource_group)
	click.echo(json.dumps([json.loads(e.model_dump_json()) for e in configs], indent=2))


@cli.command()
@click.argument("resource_id")
@subscription_option
def delete(resource_id: str, subscription: Optional[str]):
	"""Delete the rule with RESOURCE_ID"""
	rules = connect(subscription or parse_rule_id(resource_id).subscription)
	rules.delete(resource_id)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False, path_type=Path))
def render(files: tuple):
	"""Render the rules declared in FILES as Terraform JSON"""
	tf = Terraform([ScheduledQueryRule(file.stem, load_config(file)) for file in files])
	click.echo(json.dumps(tf.render(), indent=2))


if __name__ == "__main__":
	cli()  # pylint: disable=no-value-for-parameter
