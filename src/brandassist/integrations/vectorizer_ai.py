"""Vectorizer.AI client: bitmap to vector conversion and account status."""

import logging
from typing import (
    Any,
    Dict,
    Optional,
)

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)

from brandassist.config import Settings
from brandassist.core.errors import (
    ToolConfigurationError,
    UpstreamError,
    upstream_failure,
)

logger = logging.getLogger(__name__)

VECTORIZER_API_URL = "https://api.vectorizer.ai/api/v1"

_AUTH_HINT = (
    "Check that VECTORIZER_AI_API_ID and VECTORIZER_AI_API_SECRET are correct, that the "
    "Vectorizer.AI account is active and that credits are available. Ask for the vectorizer "
    "account status to verify."
)
_RATE_LIMIT_HINT = "Too many requests to Vectorizer.AI. Wait a moment and try again."
_GENERIC_HINT = (
    "Try again in a moment, check the vectorizer account status, or use mode \"test\" "
    "to debug without spending credits."
)


class VectorizeOptions(BaseModel):
    mode: str = "preview"
    output_format: str = "svg"
    max_colors: Optional[int] = None
    retention_days: int = 1

    def form_fields(self) -> Dict[str, str]:
        fields = {
            "mode": self.mode,
            "output.file_format": self.output_format,
            "policy.retention_days": str(self.retention_days),
        }
        if self.max_colors:
            fields["processing.max_colors"] = str(self.max_colors)
        return fields


class VectorizeResult(BaseModel):
    data: bytes
    content_type: str = "application/octet-stream"
    image_token: Optional[str] = None
    credits_charged: float = 0.0
    credits_calculated: Optional[float] = None


class AccountStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    subscription_plan: str = Field("none", alias="subscriptionPlan")
    subscription_state: str = Field("unknown", alias="subscriptionState")
    credits: float = 0


def _float_header(value: str | None) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class VectorizerClient:
    """HTTP Basic-authenticated client for the Vectorizer.AI v1 API."""

    SERVICE_NAME = "Vectorizer.AI"

    def __init__(
        self,
        api_id: str,
        api_secret: str,
        http: httpx.Client | None = None,
        timeout: float = 120.0,
        base_url: str = VECTORIZER_API_URL,
    ) -> None:
        self._auth = httpx.BasicAuth(api_id, api_secret)
        self._http = http or httpx.Client(timeout=timeout)
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings: Settings) -> "VectorizerClient":
        if not settings.VECTORIZER_AI_API_ID or not settings.VECTORIZER_AI_API_SECRET:
            raise ToolConfigurationError(
                "Vectorizer.AI credentials not configured.",
                "Set VECTORIZER_AI_API_ID and VECTORIZER_AI_API_SECRET in the environment. "
                "Credentials are available at https://vectorizer.ai/account.",
            )
        return cls(settings.VECTORIZER_AI_API_ID, settings.VECTORIZER_AI_API_SECRET)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _error(self, resp: httpx.Response) -> UpstreamError:
        message = resp.reason_phrase or "error"
        code: Any = 0
        try:
            payload = resp.json()
        except ValueError:
            payload = None
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            message = error.get("message") or message
            code = error.get("code", 0)
        elif isinstance(error, str) and error:
            message = error

        status = resp.status_code
        if status in (401, 403):
            hint = _AUTH_HINT
        elif status == 429:
            hint = _RATE_LIMIT_HINT
        else:
            hint = _GENERIC_HINT
        return UpstreamError(
            f"Vectorizer.AI API error: {message} (HTTP {status}, Code: {code})",
            hint,
            status_code=status,
        )

    def _vectorize(
        self,
        options: VectorizeOptions,
        data: Dict[str, str],
        files: Dict[str, Any] | None = None,
    ) -> VectorizeResult:
        try:
            resp = self._http.post(
                f"{self.base_url}/vectorize",
                auth=self._auth,
                data={**options.form_fields(), **data},
                files=files,
            )
        except httpx.HTTPError as exc:
            logger.warning("Vectorizer.AI request failed: %s", exc)
            raise upstream_failure(self.SERVICE_NAME, exc) from exc

        if resp.is_error:
            logger.warning("Vectorizer.AI returned HTTP %d", resp.status_code)
            raise self._error(resp)

        return VectorizeResult(
            data=resp.content,
            content_type=resp.headers.get("content-type", "application/octet-stream")
            .split(";")[0]
            .strip(),
            image_token=resp.headers.get("X-Image-Token"),
            credits_charged=_float_header(resp.headers.get("X-Credits-Charged")) or 0.0,
            credits_calculated=_float_header(resp.headers.get("X-Credits-Calculated")),
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def vectorize_url(self, image_url: str, options: VectorizeOptions) -> VectorizeResult:
        return self._vectorize(options, {"image.url": image_url})

    def vectorize_bytes(
        self, content: bytes, filename: str, options: VectorizeOptions
    ) -> VectorizeResult:
        return self._vectorize(options, {}, files={"image": (filename, content)})

    def vectorize_base64(self, payload: str, options: VectorizeOptions) -> VectorizeResult:
        return self._vectorize(options, {"image.base64": payload})

    def account_status(self) -> AccountStatus:
        try:
            resp = self._http.get(f"{self.base_url}/account", auth=self._auth)
        except httpx.HTTPError as exc:
            raise upstream_failure(self.SERVICE_NAME, exc) from exc
        if resp.is_error:
            raise self._error(resp)
        try:
            return AccountStatus.model_validate(resp.json())
        except ValueError as exc:
            raise UpstreamError(
                "Vectorizer.AI returned an account status that could not be read.", _GENERIC_HINT
            ) from exc
