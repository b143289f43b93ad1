"""
LLM Provider Abstraction — Multi-Cloud Support

Supports Google Gemini (default), OpenAI (direct), Azure OpenAI, and AWS
Bedrock as interchangeable completion backends. Each provider exposes the
same chat() method and translates its SDK's failures into the LLMError
family (NetworkError, LLMTimeoutError, HttpError) so the analysis loop can
decide what to retry. SDK-level retries are disabled; the analysis loop
owns the retry budget.

Selection via LLM_PROVIDER env var (default: "gemini").
"""

import logging
import os

from healthreport.errors import ConfigError, HttpError, LLMTimeoutError, NetworkError

logger = logging.getLogger(__name__)


class GeminiProvider:
    """Google Gemini via the google-genai SDK."""

    provider_name = "Google Gemini"
    chat_model = "gemini-2.5-flash"

    def __init__(self):
        from google import genai

        api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
        if not api_key:
            raise ConfigError("Gemini requires the GEMINI_API_KEY env var")

        self.client = genai.Client(api_key=api_key)
        self.chat_model = os.environ.get("GEMINI_MODEL", self.chat_model)
        logger.info("Initialized Gemini provider (model=%s)", self.chat_model)

    def chat(self, messages: list[dict], model: str | None = None,
             temperature: float = 0.7, max_tokens: int = 8192,
             timeout: float | None = None) -> str:
        from google.genai import types

        logger.debug("Chat request to Gemini model=%s", model or self.chat_model)
        system_parts = [m["content"] for m in messages if m["role"] == "system"]
        contents = [
            types.Content(
                role="model" if m["role"] == "assistant" else "user",
                parts=[types.Part.from_text(text=m["content"])],
            )
            for m in messages if m["role"] != "system"
        ]

        config = types.GenerateContentConfig(
            system_instruction="\n\n".join(system_parts) or None,
            temperature=temperature,
            max_output_tokens=max_tokens,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)) if timeout else None,
        )

        try:
            response = self.client.models.generate_content(
                model=model or self.chat_model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            translated = _translate_gemini_error(e)
            if translated is e:
                raise
            raise translated from e
        return response.text or ""


class OpenAIProvider:
    """Direct OpenAI API provider."""

    provider_name = "OpenAI"
    chat_model = "gpt-4o-mini"

    def __init__(self):
        from openai import OpenAI
        self.client = OpenAI(max_retries=0)
        logger.info("Initialized OpenAI provider")

    def chat(self, messages: list[dict], model: str | None = None,
             temperature: float = 0.7, max_tokens: int = 8192,
             timeout: float | None = None) -> str:
        logger.debug("Chat request to OpenAI model=%s", model or self.chat_model)
        try:
            response = self.client.chat.completions.create(
                model=model or self.chat_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:
            translated = _translate_openai_error(e)
            if translated is e:
                raise
            raise translated from e
        return response.choices[0].message.content or ""


class AzureOpenAIProvider:
    """Azure OpenAI Service provider."""

    provider_name = "Azure OpenAI"

    def __init__(self):
        from openai import AzureOpenAI

        endpoint = os.environ.get("AZURE_OPENAI_ENDPOINT")
        api_key = os.environ.get("AZURE_OPENAI_API_KEY")
        api_version = os.environ.get("AZURE_OPENAI_API_VERSION", "2024-02-01")

        if not endpoint or not api_key:
            raise ConfigError(
                "Azure OpenAI requires AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY env vars"
            )

        self.client = AzureOpenAI(
            azure_endpoint=endpoint,
            api_key=api_key,
            api_version=api_version,
            max_retries=0,
        )
        self.chat_model = os.environ.get("AZURE_CHAT_DEPLOYMENT")

        if not self.chat_model:
            raise ConfigError("Azure OpenAI requires the AZURE_CHAT_DEPLOYMENT env var")
        logger.info("Initialized Azure OpenAI provider (endpoint=%s)", endpoint)

    def chat(self, messages: list[dict], model: str | None = None,
             temperature: float = 0.7, max_tokens: int = 8192,
             timeout: float | None = None) -> str:
        logger.debug("Chat request to Azure OpenAI model=%s", model or self.chat_model)
        try:
            response = self.client.chat.completions.create(
                model=model or self.chat_model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                timeout=timeout,
            )
        except Exception as e:
            translated = _translate_openai_error(e)
            if translated is e:
                raise
            raise translated from e
        return response.choices[0].message.content or ""


class BedrockProvider:
    """AWS Bedrock provider using the Converse API."""

    provider_name = "AWS Bedrock"

    def __init__(self):
        import boto3
        from botocore.config import Config

        region = os.environ.get("AWS_REGION", "us-east-1")
        self.bedrock = boto3.client(
            "bedrock-runtime",
            region_name=region,
            config=Config(
                read_timeout=int(os.environ.get("BEDROCK_READ_TIMEOUT", "120")),
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )
        self.chat_model = os.environ.get(
            "BEDROCK_CHAT_MODEL", "anthropic.claude-3-haiku-20240307-v1:0"
        )
        logger.info("Initialized Bedrock provider (region=%s)", region)

    def chat(self, messages: list[dict], model: str | None = None,
             temperature: float = 0.7, max_tokens: int = 8192,
             timeout: float | None = None) -> str:
        # Bedrock timeouts are fixed per client (BEDROCK_READ_TIMEOUT)
        logger.debug("Chat request to Bedrock model=%s", model or self.chat_model)
        system_parts = []
        converse_messages = []

        for msg in messages:
            if msg["role"] == "system":
                system_parts.append({"text": msg["content"]})
            else:
                converse_messages.append({
                    "role": msg["role"],
                    "content": [{"text": msg["content"]}],
                })

        kwargs = {
            "modelId": model or self.chat_model,
            "messages": converse_messages,
            "inferenceConfig": {
                "temperature": temperature,
                "maxTokens": max_tokens,
            },
        }
        if system_parts:
            kwargs["system"] = system_parts

        try:
            response = self.bedrock.converse(**kwargs)
        except Exception as e:
            translated = _translate_botocore_error(e)
            if translated is e:
                raise
            raise translated from e

        content = response["output"]["message"]["content"]
        return content[0].get("text", "") if content else ""


# --- SDK error translation ---

def _translate_openai_error(e: Exception) -> Exception:
    import openai

    if isinstance(e, openai.APITimeoutError):
        return LLMTimeoutError(str(e))
    if isinstance(e, openai.APIConnectionError):
        return NetworkError(str(e))
    if isinstance(e, openai.APIStatusError):
        return HttpError(e.status_code, str(e))
    return e


def _translate_gemini_error(e: Exception) -> Exception:
    import httpx
    from google.genai import errors

    if isinstance(e, errors.APIError):
        return HttpError(e.code or 500, str(e))
    if isinstance(e, httpx.TimeoutException):
        return LLMTimeoutError(str(e))
    if isinstance(e, httpx.TransportError):
        return NetworkError(str(e))
    return e


def _translate_botocore_error(e: Exception) -> Exception:
    from botocore import exceptions

    if isinstance(e, (exceptions.ReadTimeoutError, exceptions.ConnectTimeoutError)):
        return LLMTimeoutError(str(e))
    if isinstance(e, (exceptions.EndpointConnectionError, exceptions.ConnectionClosedError)):
        return NetworkError(str(e))
    if isinstance(e, exceptions.ClientError):
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 500)
        return HttpError(status, str(e))
    return e


_PROVIDERS = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "azure": AzureOpenAIProvider,
    "bedrock": BedrockProvider,
}


def create_provider():
    """
    Create an LLM provider based on the LLM_PROVIDER env var.
    Defaults to "gemini" if not set.
    """
    name = os.environ.get("LLM_PROVIDER", "gemini").lower()
    if name not in _PROVIDERS:
        available = ", ".join(_PROVIDERS)
        raise ConfigError(
            f"Unknown LLM_PROVIDER '{name}'. Choose from: {available}"
        )
    return _PROVIDERS[name]()
