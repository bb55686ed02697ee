"""Access the Azure HTTP API"""
from __future__ import annotations

import dataclasses
import logging
import threading
import time
from typing import Callable, Optional, Type, Union

import requests
from pydantic import TypeAdapter, ValidationError

from azmonitor.azrest.models import AzList, AzureError, AzureErrorDetails, AzureErrorResponse, PhaseTimeout, Req, Ret_T

l = logging.getLogger(__name__)


def fmt_req(req: Req) -> str:
	"""Format a request"""
	return req.name


def fmt_log(msg: str, req: Req, **kwargs: Union[str, int, float]) -> str:
	"""Format a log statement referencing a request"""
	arg_s = " ".join(f"{k}={v}" for k, v in kwargs.items())
	return f"{msg} req={fmt_req(req)} {arg_s}"


@dataclasses.dataclass
class RetryPolicy:
	"""Parameters and strategies for retrying Azure REST requests"""

	retries: int = 0  # number of times to retry. This is in addition to the initial try


class Deadline:
	"""
	A budget of wall-clock time for one lifecycle phase.

	The remaining budget becomes the socket timeout of each request made under it.
	Another thread may `cancel` it; the next request made under it will then fail.
	"""

	def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
		self._clock = clock
		self.seconds = seconds
		self.expires_at = clock() + seconds
		self._cancelled = threading.Event()

	def cancel(self):
		self._cancelled.set()

	@property
	def cancelled(self) -> bool:
		return self._cancelled.is_set()

	def remaining(self) -> float:
		return max(0.0, self.expires_at - self._clock())

	def check(self, what: str) -> float:
		"""Raise if the phase may not continue, otherwise return the seconds remaining"""
		if self.cancelled:
			raise PhaseTimeout(f"{what} was cancelled")
		remaining = self.remaining()
		if remaining <= 0:
			raise PhaseTimeout(f"{what} exceeded its timeout of {self.seconds}s")
		return remaining


class AzRest:
	"""
	Access the Azure HTTP API

	Instances hold no per-call state and can be shared between threads.
	"""

	def __init__(self, session: requests.Session, base_url: str = "https://management.azure.com", retry_policy: RetryPolicy = RetryPolicy()):
		self.session = session

		self.base_url = base_url
		self.retry_policy = retry_policy

	@classmethod
	def from_credential(cls, credential, token_scope="https://management.azure.com//.default", base_url="https://management.azure.com", retry_policy: RetryPolicy = RetryPolicy()) -> AzRest:
		"""Create from an Azure credential"""
		token = credential.get_token(token_scope)
		session = requests.Session()
		session.headers["Authorization"] = f"Bearer {token.token}"

		return cls(session=session, base_url=base_url, retry_policy=retry_policy)

	def to_request(self, req: Req) -> requests.Request:
		"""Convert a Req into a requests.Request"""
		r = requests.Request(method=req.method, url=self.base_url + req.path)
		r.params = {**req.params}
		if req.apiv:
			r.params["api-version"] = req.apiv
		if req.body:
			r.headers["Content-Type"] = "application/json"
			r.data = req.body.model_dump_json(exclude_none=True, by_alias=True)
		return r

	def call(self, req: Req[Ret_T], deadline: Optional[Deadline] = None) -> Ret_T:
		"""Make the request to Azure"""
		r = self.to_request(req)
		res = self._deserialise(req, self._call_with_retry(req, r, deadline))
		if res is None:
			return res

		if isinstance(res, AzList):
			res_list: AzList = res
			acc = res.value
			page = 0
			while res_list.nextLink:
				page += 1
				l.debug(fmt_log("paginating req", req, page=str(page)))
				# This is basically always a GET
				r = requests.Request(method="GET", url=res_list.nextLink)
				res_list = self._deserialise(req, self._call_with_retry(req, r, deadline))  # type: ignore  # we know the req
				acc.extend(res_list.value)
			return acc  # type: ignore  # we're deliberately unwrapping a list into its primitive type
		else:
			return res

	def _call_with_retry(self, req: Req[Ret_T], r: requests.Request, deadline: Optional[Deadline]) -> requests.Response:
		l.debug(fmt_log("making req", req))
		res = self._do_call(req, r, deadline)
		if isinstance(res, AzureError):
			retries = 0
			while retries < self.retry_policy.retries and isinstance(res, AzureError) and not res.is_not_found():
				l.debug(fmt_log("req returned error; retrying", req, err=res.error.model_dump_json()))
				retries += 1
				res = self._do_call(req, r, deadline)

		if isinstance(res, AzureError):
			if res.is_not_found():
				l.debug(fmt_log("req returned not found", req, status=str(res.status_code)))
			else:
				l.warning(fmt_log("req returned error; retries exhausted", req, err=res.error.model_dump_json()))
			raise res
		else:
			l.debug(fmt_log("req complete", req, status=res.status_code))
			return res

	def _do_call(self, req: Req, r: requests.Request, deadline: Optional[Deadline]) -> Union[requests.Response, AzureError]:
		"""Make a single request to Azure, without retry or pagination"""
		timeout = deadline.check(fmt_req(req)) if deadline else None
		try:
			res = self.session.send(self.session.prepare_request(r), timeout=timeout)
		except requests.Timeout as e:
			raise PhaseTimeout(f"{fmt_req(req)} timed out waiting for Azure") from e
		if not res.ok:
			return self._decode_error(res)
		return res

	@staticmethod
	def _decode_error(res: requests.Response) -> AzureError:
		"""Decode an error response. Not every error has an Azure-shaped body, an empty 404 is common"""
		try:
			return AzureErrorResponse.model_validate_json(res.content).error.as_exception(res.status_code)
		except ValidationError:
			details = AzureErrorDetails(code=str(res.status_code), message=res.text or str(res.reason or ""))
			return details.as_exception(res.status_code)

	def _deserialise(self, req: Req[Ret_T], res: requests.Response) -> Ret_T:
		if req.ret_t is Type[None]:  # noqa: E721  # we're comparing types here
			return None  # type: ignore

		type_adapter = TypeAdapter(req.ret_t)
		if len(res.content) == 0:
			return type_adapter.validate_python(None)

		deserialised = type_adapter.validate_json(res.content)
		return deserialised


class AzOps:
	"""Parent class for helpers which dispatch requests to Azure"""

	def __init__(self, azrest: AzRest):
		self.azrest = azrest

	def run(self, req: Req[Ret_T], deadline: Optional[Deadline] = None) -> Ret_T:
		"""Call a request"""
		return self.azrest.call(req, deadline)
