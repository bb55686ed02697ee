"""
Helpers for testing resource IDs

These helpers generate azmonitor.rid.rid resources. Other implementations of resource IDs may use these for validation.
"""

import string

from hypothesis.strategies import builds, none, sampled_from, text, uuids

from azmonitor.rid.rid import Resource, ResourceGroup, SubResource, Subscription

az_alnum = text(alphabet=list(string.ascii_letters + string.digits), min_size=1)
az_name = text(alphabet=list(string.ascii_letters + string.digits + "-_"), min_size=1, max_size=40)
az_provider = builds(lambda ns, p: f"{ns}.{p}", az_alnum, az_alnum)
st_subscription = builds(lambda u: Subscription(str(u)), uuids())
st_rg = builds(lambda sub, name: ResourceGroup(name, sub), st_subscription, az_name)
st_resource_base = builds(
	lambda provider, res_type, name, rg, sub: Resource(provider, res_type, name, ResourceGroup(rg, sub) if rg else None, parent=None, sub=sub),
	az_provider,
	az_alnum,
	az_name,
	none() | az_name,
	st_subscription,
)
st_subresource = builds(
	lambda parent, res_type, name: SubResource(res_type, name, parent.rg, parent.sub, parent=parent),
	st_resource_base,
	az_alnum.filter(lambda s: s.lower() not in {"subscriptions", "resourcegroups", "providers"}),  # "providers" is not valid as a subresource type and will trip up the parser
	az_name,
)
st_rule = builds(
	lambda rg, name, insights: Resource(insights, "scheduledQueryRules", name, rg, rg.sub),
	st_rg,
	az_name,
	sampled_from(["Microsoft.Insights", "microsoft.insights"]),
)
st_resource_any = st_subscription | st_rg | st_resource_base | st_subresource | st_rule
