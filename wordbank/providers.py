"""
Model providers that produce raw batch text.

Every provider exposes ``fetch_batch(count) -> str`` and raises
``AcquisitionError`` on failure; nothing downstream knows which backend
answered except through ``source_tag``.
"""

import logging
import subprocess
import time
from typing import List, Optional

import requests

from .config import AppConfig, LocalModelSettings, RemoteApiSettings
from .models import AcquisitionError, ConfigurationError, ErrorKind
from .monitoring import truncate
from .prompts import build_word_prompt
from .quota_monitor import QuotaMonitor, retry_after_seconds

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = {408, 425, 429}


def classify_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.AUTH
    if status_code in _TRANSIENT_STATUS or status_code >= 500:
        return ErrorKind.TRANSIENT_NETWORK
    return ErrorKind.API


class CandidateSource:
    """Base class for a model provider."""

    name = "base"

    def __init__(self, categories=()):
        self.categories = tuple(categories)

    @property
    def source_tag(self) -> str:
        raise NotImplementedError

    def fetch_batch(self, count: int) -> str:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.source_tag})"


class RemoteApiSource(CandidateSource):
    """Chat-completions endpoint with bearer-token auth (Groq and compatible APIs)."""

    name = "remote"

    def __init__(self, settings: RemoteApiSettings, categories=(), quota: Optional[QuotaMonitor] = None,
                 temperature: float = 0.9, max_tokens: int = 2000):
        super().__init__(categories)
        self.settings = settings
        self.quota = quota or QuotaMonitor()
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.headers = {
            "Authorization": f"Bearer {settings.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        # Wait requested by the last 429, from Retry-After or the quota reset
        self.last_retry_after = 0.0

    @property
    def source_tag(self) -> str:
        return f"Groq-API/{self.settings.model_name}"

    def build_payload(self, count: int) -> dict:
        return {
            "model": self.settings.model_name,
            "messages": [{"role": "user", "content": build_word_prompt(count, self.categories)}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

    def fetch_batch(self, count: int) -> str:
        payload = self.build_payload(count)
        self.last_retry_after = 0.0
        logger.info(f"Sending remote API request (model={self.settings.model_name}, count={count})")
        started = time.monotonic()
        try:
            response = requests.post(self.settings.api_url, json=payload, headers=self.headers,
                                     timeout=self.settings.timeout_s)
        except requests.Timeout as e:
            raise AcquisitionError(ErrorKind.TRANSIENT_NETWORK, f"Remote API request timed out: {e}")
        except requests.ConnectionError as e:
            raise AcquisitionError(ErrorKind.TRANSIENT_NETWORK, f"Remote API connection failed: {e}")
        except requests.RequestException as e:
            raise AcquisitionError(ErrorKind.API, f"Remote API request failed: {e}")

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(f"Remote API responded with {response.status_code} in {elapsed_ms:.0f}ms")

        self.quota.update_quota(response.headers)
        warning = self.quota.get_quota_warning()
        if warning:
            logger.warning(f"Quota warning: {warning['message']}")

        if response.status_code >= 400:
            kind = classify_status(response.status_code)
            if response.status_code == 429:
                self.last_retry_after = retry_after_seconds(response.headers,
                                                             default=self.quota.cooldown_seconds())
            detail = _error_detail(response)
            raise AcquisitionError(kind, f"Remote API returned {response.status_code}: {detail}",
                                   status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            raise AcquisitionError(ErrorKind.MALFORMED_RESPONSE, "Remote API returned a non-JSON body",
                                   status_code=response.status_code, raw_text=response.text)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not isinstance(content, str) or not content.strip():
            logger.error(f"Remote API response has no message content: {truncate(data)}")
            raise AcquisitionError(ErrorKind.NO_CANDIDATES, "Remote API returned no message content",
                                   status_code=response.status_code)
        logger.debug(f"Remote API raw content: {truncate(content, 500)}")
        return content


def _error_detail(response) -> str:
    try:
        body = response.json()
        return str(body.get("error", {}).get("message") or body)
    except (ValueError, AttributeError):
        return truncate(response.text)


class LocalModelSource(CandidateSource):
    """Local model run through its command-line client (``ollama run <model> <prompt>``)."""

    name = "local"

    def __init__(self, settings: LocalModelSettings, categories=()):
        super().__init__(categories)
        self.settings = settings

    @property
    def source_tag(self) -> str:
        return f"Ollama-CLI/{self.settings.model_name}"

    def build_command(self, count: int) -> List[str]:
        prompt = build_word_prompt(count, self.categories, strict_json=False)
        return [self.settings.command, "run", self.settings.model_name, prompt]

    def fetch_batch(self, count: int) -> str:
        command = self.build_command(count)
        logger.info(f"Running local model (model={self.settings.model_name}, timeout={self.settings.timeout_s:.0f}s)")
        started = time.monotonic()
        try:
            result = subprocess.run(command, capture_output=True, text=True, encoding="utf-8",
                                    timeout=self.settings.timeout_s, check=False)
        except subprocess.TimeoutExpired:
            raise AcquisitionError(ErrorKind.TRANSIENT_NETWORK,
                                   f"Local model timed out after {self.settings.timeout_s:.0f}s")
        except FileNotFoundError:
            raise AcquisitionError(ErrorKind.API, f"Local model command not found: {self.settings.command}")
        except OSError as e:
            raise AcquisitionError(ErrorKind.API, f"Local model command failed to start: {e}")

        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(f"Local model finished with exit code {result.returncode} in {elapsed_ms:.0f}ms")
        if result.stderr:
            logger.warning(f"Local model stderr: {truncate(result.stderr)}")
        if result.returncode != 0:
            raise AcquisitionError(ErrorKind.TRANSIENT_NETWORK,
                                   f"Local model exited with code {result.returncode}")
        output = (result.stdout or "").strip()
        if not output:
            raise AcquisitionError(ErrorKind.NO_CANDIDATES, "Local model produced no output")
        logger.debug(f"Local model raw output: {truncate(output, 500)}")
        return output


def build_sources(config: AppConfig) -> List[CandidateSource]:
    """Providers in priority order: remote API first, then the local model.

    Raises:
        ConfigurationError: if neither provider is configured
    """
    sources: List[CandidateSource] = []
    if config.remote:
        sources.append(RemoteApiSource(config.remote, config.allowed_categories))
        logger.info(f"Remote API provider enabled (model={config.remote.model_name})")
    if config.local:
        sources.append(LocalModelSource(config.local, config.allowed_categories))
        logger.info(f"Local model provider enabled (model={config.local.model_name})")
    if not sources:
        logger.error("Neither the remote API nor a local model is configured.")
        raise ConfigurationError("No model provider configured; set GROQ_* or OLLAMA_MODEL_NAME.")
    return sources
