from abc import abstractmethod
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from shared.clients.HttpClientInterface import HttpClientInterface
from shared.exceptions import ProviderError, ProviderUnavailable
from shared.helper.HelperConfig import HelperConfig
from shared.models.embedding import EmbeddingResult


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, ProviderError) and exc.transient


class EmbedClientInterface(HttpClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        # model and retry config
        self.embed_model = helper_config.get_string_val(f"{self.get_client_type().upper()}_MODEL", default=self._get_default_model())
        self.max_retries = int(helper_config.get_number_val(f"{self.get_client_type().upper()}_MAX_RETRIES", default=0))

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def requires_api_key(self) -> bool:
        """
        Whether the provider refuses requests without an API key. Hosted providers do, local ones usually don't.
        """
        return True

    @abstractmethod
    def _has_api_key(self) -> bool:
        """
        Returns True if an API key is configured for the provider.
        """
        pass

    def ensure_available(self) -> None:
        """
        Fails fast when the provider cannot possibly serve a request.

        Raises:
            ProviderUnavailable: If the provider needs an API key and none is configured.
        """
        if self.requires_api_key() and not self._has_api_key():
            raise ProviderUnavailable(
                f"No API key configured for embedding provider '{self.get_engine_name()}'. "
                f"Set {self._get_config_key_name('API_KEY')}."
            )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "embed"

    @abstractmethod
    def _get_default_model(self) -> str:
        """
        Returns the model used when EMBED_MODEL is not set.
        """
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        """
        Returns the endpoint path for embedding requests.

        Returns:
            str: The endpoint path for embedding requests (e.g. "/api/embed")
        """
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def get_embed_payload(self, text: str) -> dict:
        """Build the provider-specific request body for embedding a single text.

        Args:
            text (str): The text to embed, passed through unmodified.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_embedding_from_response(self, response_data: dict) -> Any:
        """Pull the raw vector out of a provider response.

        Response format differs by provider:
        - Gemini embedContent: {"embedding": {"values": [...]}}
        - OpenAI-compatible:   {"data": [{"embedding": [...], "index": 0}]}
        - Ollama /api/embed:   {"embeddings": [[...]]}

        Args:
            response_data (dict): The parsed JSON response body.

        Returns:
            Any: Whatever sits at the provider's vector field path, or None if the path is missing.
                 Validation happens in do_embed().
        """
        pass

    def extract_model_from_response(self, response_data: dict) -> str:
        """
        Returns the model name reported by the provider, falling back to the configured model.
        """
        return self.embed_model

    def _validate_vector(self, raw: Any) -> list[float]:
        """Check that a raw vector field holds a non-empty numeric array.

        Raises:
            ProviderError: If the field is missing, not an array, empty, or holds non-numeric entries.
        """
        if not isinstance(raw, list) or not raw:
            raise ProviderError(
                f"Malformed embedding response from '{self.get_engine_name()}': expected a non-empty array, got {type(raw).__name__}."
            )
        if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in raw):
            raise ProviderError(
                f"Malformed embedding response from '{self.get_engine_name()}': vector contains non-numeric values."
            )
        return [float(v) for v in raw]

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_embed(self, text: str) -> EmbeddingResult:
        """Embed a single text with one request to the provider.

        Transient failures (5xx, 429, transport errors) are retried with
        exponential jittered backoff when EMBED_MAX_RETRIES is above zero.

        Args:
            text (str): The text to embed. Callers are responsible for chunk sizing.

        Returns:
            EmbeddingResult: The vector and the model that produced it.

        Raises:
            ProviderUnavailable: If no API key is configured for a provider that needs one.
            ProviderError: If the request fails or the response is malformed.
        """
        self.ensure_available()
        if self.max_retries <= 0:
            return await self._do_embed_once(text)

        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_transient),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential_jitter(initial=1, max=30, jitter=2),
            reraise=True,
            before_sleep=lambda retry_state: self.logging.warning(
                "Embedding request to '%s' failed, retry %d/%d",
                self.get_engine_name(), retry_state.attempt_number, self.max_retries,
            ),
        ):
            with attempt:
                return await self._do_embed_once(text)

    async def _do_embed_once(self, text: str) -> EmbeddingResult:
        try:
            response = await self.do_request(method="POST", endpoint=self.get_endpoint_embedding(), json=self.get_embed_payload(text))
        except httpx.HTTPError as exc:
            raise ProviderError(f"Embedding request to '{self.get_engine_name()}' failed: {exc}", transient=True) from exc

        if not 200 <= response.status_code < 300:
            self.logging.error(
                "Embedding request failed: status %d, body: %s",
                response.status_code,
                response.text[:200],
            )
            raise ProviderError(
                f"Embedding request to '{self.get_engine_name()}' failed with status {response.status_code}.",
                status_code=response.status_code,
                transient=response.status_code >= 500 or response.status_code == 429,
            )

        try:
            response_data = response.json()
        except ValueError as exc:
            raise ProviderError(f"Embedding response from '{self.get_engine_name()}' is not valid JSON.") from exc
        if not isinstance(response_data, dict):
            raise ProviderError(f"Embedding response from '{self.get_engine_name()}' is not a JSON object.")

        vector = self._validate_vector(self.extract_embedding_from_response(response_data))
        return EmbeddingResult(vector=vector, model=self.extract_model_from_response(response_data))
