"""Settings for managing scheduled query rules"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from azmonitor.azrest.azrest import AzRest, Deadline, RetryPolicy

Phase = Literal["create", "read", "update", "delete"]


class Settings(BaseSettings):
	"""
	Settings for azmonitor

	Read from the environment, for example `AZMONITOR_TIMEOUTS__READ=60`.
	"""

	model_config = SettingsConfigDict(env_prefix="AZMONITOR_", env_nested_delimiter="__")

	class Features(BaseModel):
		"""Behaviours of the host which can be toggled"""

		import_protection: bool = True  # refuse to create rules which already exist instead of adopting them

	class Timeouts(BaseModel):
		"""Seconds each lifecycle phase may take"""

		create: float = 30 * 60
		read: float = 5 * 60
		update: float = 30 * 60
		delete: float = 30 * 60

		def deadline(self, phase: Phase) -> Deadline:
			return Deadline(getattr(self, phase))

	base_url: str = "https://management.azure.com"
	token_scope: str = "https://management.azure.com//.default"
	subscription_id: Optional[str] = None
	retries: int = 0

	features: Settings.Features = Features()
	timeouts: Settings.Timeouts = Timeouts()

	def azrest(self, credential) -> AzRest:
		"""Connect to Azure with these settings"""
		return AzRest.from_credential(credential, token_scope=self.token_scope, base_url=self.base_url, retry_policy=RetryPolicy(retries=self.retries))
