"""Task extraction from meeting transcripts using LangChain with JSON output."""
import logging
import time
from typing import Any, Dict, List, Optional

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.exceptions import OutputParserException
from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_openai import ChatOpenAI
from openai import APITimeoutError

from .errors import ProviderError, ValidationError
from .llm_config import TASK_EXTRACTOR_CONFIG

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an assistant that extracts actionable tasks from a meeting transcript.

CRITICAL OUTPUT RULES:
- Respond with JSON ONLY: a plain array of task objects.
- Do NOT wrap the JSON in markdown and do NOT add explanations.
- If there are no tasks, return an empty array: [].

OUTPUT SCHEMA (array of objects):
[
  {{
    "id": "task-1",
    "description": "concise task description in imperative form",
    "priority": "low" | "medium" | "high",
    "dependencies": ["task-id", ...]
  }}
]

TASK EXTRACTION GUIDELINES:
- Extract only concrete, actionable items that someone can complete.
- Ignore vague ideas, brainstorming, or non-actionable discussion.
- Use short deterministic ids ("task-1", "task-2", ...).
- Infer priorities:
  - "high": urgent, blockers, or deadlines mentioned.
  - "medium": important but not immediately urgent.
  - "low": nice-to-have or long-term.
- "dependencies" lists the ids of tasks that must be finished first.
"""


class LLMTimingCallbackHandler(BaseCallbackHandler):
    """Logs when the model starts and finishes generating."""

    def __init__(self):
        self._started: Optional[float] = None

    def on_chat_model_start(self, serialized: dict, messages: list, **kwargs) -> None:
        self._started = time.monotonic()
        logger.info("LLM call started (model is generating...)")

    def on_llm_end(self, response, **kwargs) -> None:
        elapsed = time.monotonic() - self._started if self._started else 0.0
        logger.info("LLM call finished in %.2fs.", elapsed)


def create_llm(llm_config: Dict[str, Any]) -> ChatOpenAI:
    """Create and configure the extraction LLM."""
    return ChatOpenAI(
        base_url=llm_config["api_url"],
        api_key=llm_config["api_key"] or "not-needed",
        model=llm_config["model_name"],
        temperature=llm_config["temperature"],
        max_tokens=llm_config["max_tokens"],
        timeout=llm_config["timeout"],
        max_retries=llm_config["max_retries"],
    )


def _as_task_list(payload: Any) -> List[Any]:
    """Accept a bare JSON array, or an object wrapping it under "tasks"."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("tasks"), list):
        return payload["tasks"]
    raise ValidationError(f"Extractor output must be a JSON array of tasks, got {type(payload).__name__}")


class TaskExtractor:
    """Turns a raw transcript into a loosely-structured list of task records."""

    def __init__(self, llm: Optional[BaseChatModel] = None, llm_config: Optional[Dict[str, Any]] = None):
        """
        Initialize the extractor.

        Args:
            llm: Chat model to use; built from llm_config when omitted
            llm_config: Model settings, defaults to TASK_EXTRACTOR_CONFIG
        """
        llm_config = llm_config or TASK_EXTRACTOR_CONFIG
        if llm is None:
            logger.info("Initializing model: %s at %s", llm_config["model_name"], llm_config["api_url"])
            llm = create_llm(llm_config)
        self.llm = llm
        self.prompt = ChatPromptTemplate.from_messages([
            ("system", SYSTEM_PROMPT),
            ("human", "Extract all actionable tasks from the following meeting transcript.\n\n"
                      "Meeting transcript:\n{transcript}"),
        ])
        self.chain = self.prompt | self.llm | JsonOutputParser()

    def extract(self, transcript: str) -> List[Any]:
        """
        Ask the model for tasks. The records are not validated here.

        Raises:
            ProviderError: the call failed, timed out or returned non-JSON output
            ValidationError: the JSON is not a list of task records
        """
        try:
            payload = self.chain.invoke(
                {"transcript": transcript},
                config={"callbacks": [LLMTimingCallbackHandler()]},
            )
        except OutputParserException as e:
            raise ProviderError("LLM response was not valid JSON", {"reason": str(e)[:200]}) from e
        except APITimeoutError as e:
            raise ProviderError("LLM call timed out", {"reason": str(e)}) from e
        except Exception as e:
            raise ProviderError("LLM call failed", {"reason": f"{type(e).__name__}: {e}"}) from e

        tasks = _as_task_list(payload)
        logger.info("Extractor returned %d raw task(s).", len(tasks))
        return tasks

    __call__ = extract
