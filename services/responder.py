"""
Automated responder: builds the conversational context, calls the external
chat-completions backend and degrades to local answers when it fails.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from openai import OpenAI, OpenAIError

from models.message import SENDER_USER
from services.errors import UpstreamFailure

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a helpful Indian E-Governance Assistant. Provide accurate information about government schemes.

IMPORTANT INSTRUCTIONS:
1. If I provide 'RELEVANT GOVERNMENT DATA' in the input, you MUST use it.
2. ALWAYS provide the 'Official Link' from the data as a Markdown link, e.g., `[Click to Apply](https://url...)`.
3. Make your response clear, structured (use bullet points), and concise."""

GREETING_KEYWORDS = ("hello", "hi", "hey", "start", "help")
_GREETING_RE = re.compile(r"\b(" + "|".join(GREETING_KEYWORDS) + r")\b", re.IGNORECASE)

GREETING_REPLY = """Hello! I am your E-Governance Assistant.

I can help you with:
- **PM Kisan Samman Nidhi**
- **Aadhaar Card Updates**
- **PAN Card Application**
- **Ayushman Bharat**
- **DigiLocker**

Ask me about any scheme!"""

OFFLINE_HEADER = "Here is the information I found (Local DB):\n\n"
OFFLINE_FOOTER = "\n*(Offline Mode Active - AI Connection Failed)*"


@dataclass(frozen=True)
class ResponderResult:
    """Outcome of one backend call: either ``text`` or a ``failure`` reason."""
    text: Optional[str] = None
    failure: Optional[str] = None

    @property
    def ok(self):
        return self.failure is None

    @classmethod
    def success(cls, text):
        return cls(text=text)

    @classmethod
    def failed(cls, reason):
        return cls(failure=str(reason))


# ---------------- CONTEXT ----------------

def map_history(history):
    """Role-map stored messages (oldest first) for the completion API."""
    return [
        {
            "role": "user" if item["sender"] == SENDER_USER else "assistant",
            "content": item["text"]
        }
        for item in history
    ]


def render_knowledge_context(records):
    if not records:
        return ""
    context = "\n\nRELEVANT GOVERNMENT DATA FOUND (Use this to answer):"
    for record in records:
        context += f"\n- Scheme: {record.name}"
        context += f"\n  Description: {record.description}"
        context += f"\n  Benefits: {', '.join(record.benefits)}"
        context += f"\n  Official Link: {record.link}"
    return context


def build_messages(text, history, records):
    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages.extend(map_history(history))
    messages.append({"role": "user", "content": text + render_knowledge_context(records)})
    return messages


# ---------------- FALLBACK ----------------

def is_greeting(text):
    return bool(_GREETING_RE.search(text or ""))


def render_local_answer(records):
    answer = OFFLINE_HEADER
    for record in records:
        answer += (
            f"### {record.name}\n{record.description}\n"
            f"**Benefits:** {', '.join(record.benefits)}\n"
            f"[Official Website]({record.link})\n\n"
        )
    return answer + OFFLINE_FOOTER


def fallback_reply(text, records, failure):
    """
    Best-effort answer when the backend is unavailable. Pure: depends only on
    the message, the knowledge matches and the failure reason.
    """
    if is_greeting(text):
        return GREETING_REPLY
    if records:
        return render_local_answer(records)
    return (
        "I am having trouble connecting to the AI service. "
        f"Please check your internet or API Key. (Error: {failure})"
    )


# ---------------- BACKEND CLIENT ----------------

class ResponderClient:
    """Thin wrapper over the OpenAI SDK pointed at an OpenAI-compatible backend."""

    def __init__(self, api_key, base_url, model, timeout=20, temperature=0.5,
                 max_tokens=600, referer=None, title=None):
        self.api_key = api_key
        self.base_url = base_url
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.headers = {}
        if referer:
            self.headers["HTTP-Referer"] = referer
        if title:
            self.headers["X-Title"] = title
        self._client = None

    @classmethod
    def from_config(cls, config):
        return cls(
            api_key=config.get("RESPONDER_API_KEY"),
            base_url=config.get("RESPONDER_BASE_URL"),
            model=config.get("RESPONDER_MODEL"),
            timeout=config.get("RESPONDER_TIMEOUT", 20),
            temperature=config.get("RESPONDER_TEMPERATURE", 0.5),
            max_tokens=config.get("RESPONDER_MAX_TOKENS", 600),
            referer=config.get("RESPONDER_REFERER"),
            title=config.get("RESPONDER_TITLE")
        )

    def _get_client(self):
        if self._client is None:
            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
                default_headers=self.headers or None
            )
        return self._client

    def complete(self, messages) -> ResponderResult:
        if not self.api_key:
            return ResponderResult.failed("Missing RESPONDER_API_KEY")

        try:
            response = self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                top_p=1,
                stream=False,
                extra_body={"repetition_penalty": 1}
            )
        except OpenAIError as e:
            return ResponderResult.failed(e)

        if not response.choices:
            return ResponderResult.failed("Responder returned no choices")
        return ResponderResult.success(response.choices[0].message.content or "")


# ---------------- ORCHESTRATOR ----------------

class ResponderOrchestrator:

    def __init__(self, client):
        self.client = client

    def _call_backend(self, text, history, records):
        try:
            result = self.client.complete(build_messages(text, history, records))
        except Exception as e:
            logger.exception("[FAIL] Responder client raised unexpectedly")
            raise UpstreamFailure(str(e)) from e
        if not result.ok:
            raise UpstreamFailure(result.failure)
        return result.text

    def reply(self, text, history: List[dict], records) -> str:
        """
        Reply text for ``text``. Always returns a string: backend failures
        resolve to :func:`fallback_reply`.
        """
        try:
            return self._call_backend(text, history, records)
        except UpstreamFailure as e:
            logger.warning("[WARN] Responder backend unavailable, using fallback: %s", e.message)
            return fallback_reply(text, records, e.message)
