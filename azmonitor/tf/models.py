"""Rendering scheduled query rules as tf-json"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class TFResource(ABC):
	"""A resource block, keyed by its type and name"""

	t: str
	name: str

	@abstractmethod
	def render(self) -> dict:
		"""The resource's arguments as JSON-serialisable data"""


@dataclass
class Terraform:
	resource: list[TFResource]

	def render(self) -> dict:
		by_type: dict[str, dict] = {}
		for resource in self.resource:
			rendered = by_type.setdefault(resource.t, {})
			if resource.name in rendered:
				raise ValueError(f"duplicate resource {resource.t}.{resource.name}")
			rendered[resource.name] = resource.render()
		return {"resource": by_type}
