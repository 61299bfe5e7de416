"""AWS Bedrock client wrapper for Claude."""

import json
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class BedrockConfig(BaseModel):
    """Bedrock configuration."""
    profile: Optional[str] = None
    region: str = "eu-west-1"
    model_id: str = "eu.anthropic.claude-sonnet-4-5-20250929-v1:0"
    max_tokens: int = 4000
    temperature: float = 0.7
    connect_timeout: float = 10.0
    read_timeout: float = 60.0


class BedrockResponse(BaseModel):
    """Response from Bedrock API."""
    content: str
    stop_reason: str
    usage: dict[str, Any]
    model: str


class BedrockClient:
    """AWS Bedrock client for invoking Claude."""

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        model_id: Optional[str] = None,
        max_tokens: Optional[int] = None,
        read_timeout: Optional[float] = None,
        client: Any = None
    ):
        """
        Initialize Bedrock client.

        Args:
            profile: AWS profile name (default: environment credentials)
            region: AWS region (default: "eu-west-1")
            model_id: Model ID or inference profile
            max_tokens: Default maximum tokens per reply
            read_timeout: Socket read timeout in seconds
            client: Pre-built bedrock-runtime client (skips session setup)
        """
        defaults = BedrockConfig()
        self.config = BedrockConfig(
            profile=profile,
            region=region or defaults.region,
            model_id=model_id or defaults.model_id,
            max_tokens=max_tokens or defaults.max_tokens,
            read_timeout=read_timeout or defaults.read_timeout,
        )

        if client is not None:
            self.client = client
        else:
            session = boto3.Session(
                profile_name=self.config.profile,
                region_name=self.config.region
            )

            # Retries stay with botocore; the caller owns the overall deadline
            retry_config = Config(
                region_name=self.config.region,
                connect_timeout=self.config.connect_timeout,
                read_timeout=self.config.read_timeout,
                retries={
                    'max_attempts': 3,
                    'mode': 'adaptive'
                }
            )

            self.client = session.client(
                service_name='bedrock-runtime',
                config=retry_config
            )

        logger.info(
            f"Initialized Bedrock client: profile={self.config.profile}, "
            f"region={self.config.region}, model={self.config.model_id}"
        )

    def invoke_model(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ) -> BedrockResponse:
        """
        Invoke Claude model with a prompt.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt
            max_tokens: Maximum tokens to generate
            temperature: Temperature for sampling

        Returns:
            BedrockResponse with content and metadata

        Raises:
            BedrockInvocationError: If API call fails
        """
        request_body = {
            "anthropic_version": "bedrock-2023-05-31",
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": temperature if temperature is not None else self.config.temperature
        }

        if system_prompt:
            request_body["system"] = system_prompt

        logger.debug(
            f"Invoking model: {self.config.model_id} "
            f"(prompt_length={len(prompt)}, max_tokens={request_body['max_tokens']})"
        )

        try:
            response = self.client.invoke_model(
                modelId=self.config.model_id,
                body=json.dumps(request_body),
                contentType='application/json',
                accept='application/json'
            )

            response_body = json.loads(response['body'].read())

            content = ""
            for block in response_body.get("content") or []:
                if block.get("type") == "text":
                    content += block.get("text", "")

            logger.info(
                f"Model invocation successful: "
                f"stop_reason={response_body.get('stop_reason')}, "
                f"input_tokens={response_body.get('usage', {}).get('input_tokens')}, "
                f"output_tokens={response_body.get('usage', {}).get('output_tokens')}"
            )

            return BedrockResponse(
                content=content,
                stop_reason=response_body.get("stop_reason") or "",
                usage=response_body.get("usage", {}),
                model=response_body.get("model", self.config.model_id)
            )

        except (BotoCoreError, ClientError) as e:
            logger.error(f"Bedrock invocation failed: {e}")
            raise BedrockInvocationError(f"Failed to invoke model: {e}") from e

    def invoke_model_with_json_schema(
        self,
        prompt: str,
        json_schema: dict[str, Any],
        system_prompt: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Invoke model and parse response as JSON matching schema.

        Args:
            prompt: User prompt
            json_schema: Expected JSON schema for response
            system_prompt: Optional system prompt

        Returns:
            Parsed JSON response

        Raises:
            BedrockInvocationError: If API call fails
            JSONParseError: If response cannot be parsed
        """
        enhanced_prompt = f"""{prompt}

Please respond with a valid JSON object matching this schema:

```json
{json.dumps(json_schema, indent=2)}
```

Return ONLY the JSON object, no additional text."""

        response = self.invoke_model(
            prompt=enhanced_prompt,
            system_prompt=system_prompt
        )

        return parse_json_content(response.content)


def parse_json_content(content: str) -> dict[str, Any]:
    """
    Parse a JSON object out of model output, tolerating markdown fences.

    Raises:
        JSONParseError: If no JSON object can be parsed
    """
    text = content.strip()

    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {e}")
        logger.error(f"Response content: {content[:500]}")
        raise JSONParseError(f"Failed to parse JSON from model response: {e}") from e

    if not isinstance(parsed, dict):
        raise JSONParseError(
            f"Expected a JSON object from model, got {type(parsed).__name__}"
        )
    return parsed


class BedrockInvocationError(Exception):
    """Raised when Bedrock API invocation fails."""
    pass


class JSONParseError(Exception):
    """Raised when JSON parsing fails."""
    pass
