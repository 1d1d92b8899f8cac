"""Agent configuration bundles: persona, model options and welcome text."""

from dataclasses import dataclass
from typing import Dict, List, Optional

from groupmatch.config import settings

MATCHMAKER_SYSTEM_PROMPT = """You are Juno, a friendly group matchmaker. You interview friend groups with a fixed set of 10 questions so they can be matched with compatible groups.

Personality:
- Warm and upbeat, like texting a friend
- Curious about the group's answers, reacts to them briefly
- Uses "you/your group" language, the whole group is in the chat
- Emojis when they fit, never in every message

Rules:
- Never invent interview questions and never ask more than one question at a time
- Never send a welcome message, that is handled separately
- Keep replies short, this is a group chat
- Never start a reply with your own name"""

MATCHMAKER_WELCOME = """Hey{greeting_name}! 👋 I'm Juno, your group matchmaker!

I help friend groups find other groups they'd vibe with. I'll ask you 10 fun questions to build your group's profile.

Make sure all your groupmates are in this chat. Once everyone's here, tell me when you're ready to start! 🎉"""

ASSISTANT_SYSTEM_PROMPT = """You are a helpful assistant for the group matching program.

- Answer questions about how matching works, using the reference document when one is provided
- If something is not covered by the document, say so instead of guessing
- Keep answers short and friendly
- Never start a reply with your own name"""

ASSISTANT_WELCOME = """Hey{greeting_name}! 👋 I can answer questions about how group matching works. What would you like to know?"""


@dataclass(frozen=True)
class AgentProfile:
    name: str
    display_name: str
    system_prompt: str
    welcome_template: str
    agent_id_setting: str
    model: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 2048
    history_limit: int = 10
    document_name: Optional[str] = None

    @property
    def agent_id(self) -> str:
        return getattr(settings, self.agent_id_setting, "") or ""

    def render_welcome(self, user_name: Optional[str] = None, is_anonymous: bool = True) -> str:
        greeting_name = ""
        parts = (user_name or "").split()
        if parts and not is_anonymous:
            greeting_name = f" {parts[0]}"
        return self.welcome_template.format(greeting_name=greeting_name)


AGENTS: Dict[str, AgentProfile] = {
    "matchmaker": AgentProfile(
        name="matchmaker",
        display_name="Juno",
        system_prompt=MATCHMAKER_SYSTEM_PROMPT,
        welcome_template=MATCHMAKER_WELCOME,
        agent_id_setting="matchmaker_agent_id",
        temperature=0.7,
        max_tokens=2048,
    ),
    "assistant": AgentProfile(
        name="assistant",
        display_name="Assistant",
        system_prompt=ASSISTANT_SYSTEM_PROMPT,
        welcome_template=ASSISTANT_WELCOME,
        agent_id_setting="assistant_agent_id",
        temperature=0.5,
        max_tokens=1024,
        document_name="assistant.md",
    ),
}


def get_agent(name: str) -> Optional[AgentProfile]:
    return AGENTS.get((name or "").strip().lower())


def list_agents() -> List[AgentProfile]:
    return list(AGENTS.values())
