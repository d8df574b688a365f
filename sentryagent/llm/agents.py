"""
Prompt-driven analysis agents.

An agent is a configuration (`AgentSpec`: instructions, prompt template and
reply parser) bound to a text generator. `AnalysisAgent.analyze()` never
raises: transport errors and unparseable replies come back as a failed
`AgentResult`.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Sequence

from pydantic import ValidationError

from sentryagent.llm import prompts
from sentryagent.utils.exceptions import SentryAgentError
from sentryagent.utils.logger import get_logger
from sentryagent.workflow.schemas import FileRecord, VulnerabilityFinding

logger = get_logger(__name__)

CODE_FENCE_RE = re.compile(r"```(?:json)?")


class TextGenerator(Protocol):
    async def generate(self, prompt: str, system: Optional[str] = None, model: Optional[str] = None) -> str:
        ...


class ReplyParseError(SentryAgentError):
    """An agent reply is not a JSON array of findings."""
    pass


def strip_code_fences(text: str) -> str:
    return CODE_FENCE_RE.sub("", text).strip()


def parse_findings(text: str, default_type: str = "general") -> List[VulnerabilityFinding]:
    """
    Parse an agent reply into findings.

    The reply must be a JSON array, optionally wrapped in markdown code
    fences. Items that do not validate (unknown severity, missing title or
    file, out-of-range confidence) are dropped individually.

    Args:
        text: Raw reply text.
        default_type: Finding type used when an item does not carry one.

    Returns:
        List[VulnerabilityFinding]: Validated findings, in reply order.

    Raises:
        ReplyParseError: If the reply is not JSON or not an array.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ReplyParseError(f"Reply is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ReplyParseError(f"Reply is a JSON {type(data).__name__}, expected an array")

    findings: List[VulnerabilityFinding] = []
    for index, item in enumerate(data):
        if isinstance(item, dict) and not item.get("type"):
            item = {**item, "type": default_type}
        try:
            findings.append(VulnerabilityFinding.model_validate(item))
        except ValidationError as e:
            logger.warning("Dropping finding #%d: %s", index, e.errors()[0].get("msg", e))
    return findings


def build_source_bundle(files: Sequence[FileRecord], limit: Optional[int] = None) -> str:
    """
    Serialize contract files for a prompt: 'FILE: <path>\\n<content>' blocks joined by blank lines.

    Args:
        files: Contract files.
        limit: Maximum number of files to include (first N are kept).
    """
    selected = files if limit is None else files[:limit]
    return "\n\n".join(f"FILE: {record.path}\n{record.content}" for record in selected)


@dataclass(frozen=True)
class AgentSpec:
    """Configuration of one analysis agent."""

    name: str
    category: str
    instructions: str
    prompt_template: str
    parser: Callable[[str, str], List[VulnerabilityFinding]] = parse_findings

    def build_prompt(self, codebase: str) -> str:
        return self.prompt_template.format(category=self.category, codebase=codebase)


@dataclass
class AgentResult:
    """Outcome of one agent invocation: findings, or the reason it failed."""

    agent_name: str
    findings: List[VulnerabilityFinding] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AnalysisAgent:
    """An AgentSpec bound to a text generator."""

    def __init__(self, spec: AgentSpec, generator: TextGenerator) -> None:
        self.spec = spec
        self.generator = generator

    @property
    def name(self) -> str:
        return self.spec.name

    async def analyze(self, source_bundle: str, model: Optional[str] = None) -> AgentResult:
        """
        Ask the model for findings over a serialized source bundle.

        Args:
            source_bundle: Output of build_source_bundle().
            model: Optional per-run model override.

        Returns:
            AgentResult: Parsed findings, or an error description.
        """
        prompt = self.spec.build_prompt(source_bundle)
        try:
            reply = await self.generator.generate(prompt, system=self.spec.instructions, model=model)
        except Exception as e:
            # Any generator failure is confined to this agent
            return AgentResult(agent_name=self.name, error=f"{type(e).__name__}: {e}")

        try:
            findings = self.spec.parser(reply, self.spec.category)
        except ReplyParseError as e:
            return AgentResult(agent_name=self.name, error=str(e))
        except Exception as e:
            # Includes custom parsers and RecursionError on deeply nested JSON
            return AgentResult(agent_name=self.name, error=f"{type(e).__name__}: {e}")

        return AgentResult(agent_name=self.name, findings=findings)


REENTRANCY_AGENT = AgentSpec(
    name="reentrancyAgent",
    category="reentrancy",
    instructions=prompts.REENTRANCY_INSTRUCTIONS,
    prompt_template=prompts.SPECIALIZED_PROMPT_TEMPLATE,
)

ACCESS_CONTROL_AGENT = AgentSpec(
    name="accessControlAgent",
    category="access-control",
    instructions=prompts.ACCESS_CONTROL_INSTRUCTIONS,
    prompt_template=prompts.SPECIALIZED_PROMPT_TEMPLATE,
)

ORACLE_MANIPULATION_AGENT = AgentSpec(
    name="oracleManipulationAgent",
    category="oracle-manipulation",
    instructions=prompts.ORACLE_INSTRUCTIONS,
    prompt_template=prompts.SPECIALIZED_PROMPT_TEMPLATE,
)

GENERAL_AGENT = AgentSpec(
    name="SolidityVulnAgent",
    category="general",
    instructions=prompts.GENERAL_INSTRUCTIONS,
    prompt_template=prompts.GENERAL_PROMPT_TEMPLATE,
)

# Invocation order of the specialized agents; findings are merged in this order
SPECIALIZED_AGENTS: List[AgentSpec] = [
    REENTRANCY_AGENT,
    ACCESS_CONTROL_AGENT,
    ORACLE_MANIPULATION_AGENT,
]


def build_agents(generator: TextGenerator, specs: Sequence[AgentSpec] = tuple(SPECIALIZED_AGENTS)) -> List[AnalysisAgent]:
    return [AnalysisAgent(spec, generator) for spec in specs]

