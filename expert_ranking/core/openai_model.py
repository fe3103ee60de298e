import logging
import os
import time
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from openai import OpenAI

# .env ファイルから環境変数をロード
load_dotenv()

logger = logging.getLogger(__name__)


class OpenAIBase:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.model = model
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError("API key not found. Set OPENROUTER_API_KEY or OPENAI_API_KEY.")
        # SDK-level retries are disabled; get_response owns the retry policy
        self.client = OpenAI(api_key=self.api_key, base_url=base_url, timeout=timeout, max_retries=0)
        self.usage_in = 0
        self.usage_out = 0

    def create_openai_query(self, query: str, system_prompt: Optional[str] = None) -> List[dict]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": query})
        return messages

    def get_response(
        self,
        query: str,
        system_prompt: Optional[str] = None,
        temperature=0,
        max_tokens=2000,
        max_retries=3,
    ) -> Tuple[str, int, int]:
        """Get response from the chat completions API with exponential backoff"""
        for attempt in range(max_retries):
            try:
                response = self.client.chat.completions.create(
                    model=self.model,
                    messages=self.create_openai_query(query=query, system_prompt=system_prompt),
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
                usage_in = response.usage.prompt_tokens if response.usage else 0
                usage_out = response.usage.completion_tokens if response.usage else 0
                self.usage_in += usage_in
                self.usage_out += usage_out
                return response.choices[0].message.content or "", usage_in, usage_out
            except Exception as e:
                if attempt < max_retries - 1:
                    wait_time = (2 ** attempt) * 2  # Exponential backoff: 2s, 4s, 8s
                    logger.warning(f"LLM API error (attempt {attempt + 1}/{max_retries}): {e}")
                    logger.warning(f"Retrying in {wait_time} seconds...")
                    time.sleep(wait_time)
                else:
                    raise  # Re-raise on final attempt


class LLM:
    def __init__(
        self,
        model: str,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
    ):
        self.model = OpenAIBase(model, api_key=api_key, base_url=base_url, timeout=timeout)

    def get_response(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature=0,
        max_tokens=2000,
        max_retries=3,
    ) -> Tuple[str, int, int]:
        response, in_usage, out_usage = self.model.get_response(
            query=prompt,
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            max_retries=max_retries,
        )

        # Strip markdown code fences some models wrap around JSON
        response = response.strip()
        if response.startswith("```"):
            response = response.strip("`")
            if response.lower().startswith("json"):
                response = response[4:]
            response = response.strip()

        return response, in_usage, out_usage
