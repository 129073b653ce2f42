"""PagerDuty REST API v2 client and escalation policy assembly."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import TypeVar

import requests
from pydantic import BaseModel, ValidationError
from rich.progress import Progress, TaskID

from pagerduty_cli.config import Settings
from pagerduty_cli.models import (
    EscalationLevel,
    EscalationPolicy,
    EscalationPolicyModel,
    OnCallModel,
    Person,
    ServiceModel,
    UserModel,
)

logger = logging.getLogger(__name__)

ACCEPT_HEADER = "application/vnd.pagerduty+json;version=2"
PROGRESS_DESCRIPTION = "Fetching data from PagerDuty"

ModelT = TypeVar("ModelT", bound=BaseModel)


class PagerDutyError(Exception):
    """Base class for errors raised while fetching from PagerDuty."""


class AuthenticationError(PagerDutyError):
    """The API token is missing or was rejected."""


class NetworkError(PagerDutyError):
    """The request could not be sent or timed out."""


class UpstreamError(PagerDutyError):
    """PagerDuty answered with a non-2xx status."""


class DecodeError(PagerDutyError):
    """A response body could not be decoded into the expected records."""


def make_escalation_policies(
    policies: Sequence[EscalationPolicyModel],
    users: Sequence[UserModel],
    oncalls: Sequence[OnCallModel],
    services: Sequence[ServiceModel],
) -> list[EscalationPolicy]:
    """Join upstream records into one ``EscalationPolicy`` per policy.

    Levels run from 1 to the deepest on-call level seen for the policy, so
    gaps become empty levels and a policy with no on-calls gets a single
    empty level 1. On-calls pointing at unknown users are skipped.
    """
    users_by_id = {user.id: user for user in users}
    result: list[EscalationPolicy] = []

    for policy in policies:
        policy_oncalls = [o for o in oncalls if o.escalation_policy.id == policy.id]
        max_depth = max((o.escalation_level for o in policy_oncalls), default=1)

        levels: list[EscalationLevel] = []
        for depth in range(1, max_depth + 1):
            people: list[Person] = []
            for oncall in policy_oncalls:
                if oncall.escalation_level != depth:
                    continue
                user = users_by_id.get(oncall.user.id)
                if user is None:
                    logger.debug(
                        "Skipping on-call user %s on %s: user not found",
                        oncall.user.id,
                        policy.id,
                    )
                    continue
                people.append(Person(id=user.id, name=user.name, email=user.email))
            levels.append(EscalationLevel(index=depth, people=people))

        result.append(
            EscalationPolicy(
                id=policy.id,
                name=policy.name,
                description=policy.description,
                levels=levels,
                services=[
                    s.name for s in services if s.escalation_policy.id == policy.id
                ],
            )
        )

    return result


class PagerDutyClient:
    """Read-only client for the handful of endpoints the CLI needs."""

    def __init__(
        self,
        settings: Settings,
        session: requests.Session | None = None,
        progress: Progress | None = None,
    ) -> None:
        if not settings.api_token:
            raise AuthenticationError(
                "No API token provided. Use --api-token or set PAGERDUTY_TOKEN."
            )
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": ACCEPT_HEADER,
                "Authorization": f"Token token={settings.api_token}",
            }
        )
        self.progress = progress
        self._task: TaskID | None = None
        self._pages_requested = 0
        if progress is not None:
            self._task = progress.add_task(PROGRESS_DESCRIPTION, total=0)

    def _page_requested(self) -> None:
        if self.progress is not None and self._task is not None:
            self._pages_requested += 1
            self.progress.update(self._task, total=self._pages_requested)

    def _page_done(self) -> None:
        if self.progress is not None and self._task is not None:
            self.progress.advance(self._task)

    def _get_page(self, url: str, params: dict) -> dict:
        try:
            response = self.session.get(
                url, params=params, timeout=self.settings.timeout
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to PagerDuty failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"PagerDuty rejected the API token (HTTP {response.status_code})"
            )
        if not 200 <= response.status_code < 300:
            raise UpstreamError(
                f"PagerDuty returned HTTP {response.status_code} for {url}: "
                f"{response.text[:500]}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise DecodeError(f"Unable to parse output from PagerDuty: {e}") from e
        if not isinstance(payload, dict):
            raise DecodeError(f"Expected a JSON object from {url}")
        return payload

    def _paginate(
        self, path: str, key: str, includes: Iterable[str] = ()
    ) -> list[dict]:
        """Collect ``payload[key]`` across every page of an offset listing."""
        url = f"{self.settings.base_url.rstrip('/')}/{path}"
        limit = self.settings.page_size
        offset = 0
        items: list[dict] = []

        while True:
            params = {
                "include[]": ",".join(includes),
                "sort_by": "name",
                "limit": limit,
                "offset": offset,
            }
            logger.debug("GET %s offset=%d", url, offset)
            self._page_requested()
            payload = self._get_page(url, params)
            self._page_done()

            page = payload.get(key)
            if not isinstance(page, list):
                raise DecodeError(f"Response from {url} has no '{key}' list")
            items.extend(page)

            if not payload.get("more", False):
                break
            offset += limit

        logger.debug("Fetched %d %s", len(items), key)
        return items

    def _fetch(
        self, path: str, model: type[ModelT], includes: Iterable[str] = ()
    ) -> list[ModelT]:
        raw = self._paginate(path, path, includes)
        try:
            return [model.model_validate(item) for item in raw]
        except ValidationError as e:
            raise DecodeError(f"Unexpected {path} record from PagerDuty: {e}") from e

    def fetch_escalation_policies(self) -> list[EscalationPolicyModel]:
        return self._fetch("escalation_policies", EscalationPolicyModel, ["targets"])

    def fetch_oncalls(self) -> list[OnCallModel]:
        return self._fetch("oncalls", OnCallModel, ["targets"])

    def fetch_users(self) -> list[UserModel]:
        return self._fetch("users", UserModel)

    def fetch_services(self) -> list[ServiceModel]:
        return self._fetch("services", ServiceModel)

    def fetch_policies_for_account(self) -> list[EscalationPolicy]:
        """Fetch and assemble every escalation policy on the account.

        Raises:
            PagerDutyError: On any transport, HTTP or decoding failure. Nothing
                is returned partially.
        """
        logger.debug("Fetching escalation policies, on-calls, users and services")
        policies = self.fetch_escalation_policies()
        oncalls = self.fetch_oncalls()
        users = self.fetch_users()
        services = self.fetch_services()
        return make_escalation_policies(policies, users, oncalls, services)
