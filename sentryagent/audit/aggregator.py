#!/usr/bin/env python3
"""
Fan specialized analysis agents out over contract sources and merge their findings.

Aggregation Algorithm:
    1. Keep the first N contract files (N = max_contract_files) and serialize them
    2. Launch every specialized agent concurrently on the same bundle
    3. Join all agents; fold each AgentResult (failed agents contribute nothing)
    4. Concatenate findings in agent invocation order
    5. If nothing was found, ask the general fallback agent exactly once
"""

import asyncio
from typing import List, Optional, Sequence

from sentryagent.llm.agents import (
    GENERAL_AGENT,
    SPECIALIZED_AGENTS,
    AgentResult,
    AgentSpec,
    AnalysisAgent,
    TextGenerator,
    build_agents,
    build_source_bundle,
)
from sentryagent.utils.logger import get_logger
from sentryagent.workflow.schemas import FileRecord, VulnerabilityFinding

logger = get_logger(__name__)

DEFAULT_MAX_CONTRACT_FILES = 20


def fold_results(results: Sequence[AgentResult]) -> List[VulnerabilityFinding]:
    """
    Merge agent outcomes in order. A failed agent counts as an empty result.
    """
    merged: List[VulnerabilityFinding] = []
    for result in results:
        if not result.ok:
            logger.warning("Agent %s failed: %s", result.agent_name, result.error)
            continue
        logger.info("Agent %s reported %d findings", result.agent_name, len(result.findings))
        merged.extend(result.findings)
    return merged


class FindingAggregator:
    """
    Runs the specialized agents and the fallback agent over contract files.

    Args:
        generator: Text generator shared by all agents (LLMClient in production).
        max_contract_files: Number of contract files included in prompts.
        specialized: Agent specs run concurrently.
        fallback: Agent spec invoked when the specialized agents find nothing.
    """

    def __init__(
        self,
        generator: TextGenerator,
        max_contract_files: int = DEFAULT_MAX_CONTRACT_FILES,
        specialized: Sequence[AgentSpec] = tuple(SPECIALIZED_AGENTS),
        fallback: AgentSpec = GENERAL_AGENT,
    ) -> None:
        self.max_contract_files = max_contract_files
        self.agents: List[AnalysisAgent] = build_agents(generator, specialized)
        self.fallback_agent = AnalysisAgent(fallback, generator)

    async def run_specialized(self, source_bundle: str, model: Optional[str] = None) -> List[AgentResult]:
        """Run every specialized agent concurrently; results come back in invocation order."""
        tasks = [asyncio.create_task(agent.analyze(source_bundle, model)) for agent in self.agents]
        return list(await asyncio.gather(*tasks))

    async def aggregate(
        self,
        contract_files: Sequence[FileRecord],
        model: Optional[str] = None,
    ) -> List[VulnerabilityFinding]:
        """
        Collect findings for the given contract files.

        Args:
            contract_files: Contract sources, in classification order.
            model: Optional per-run model override.

        Returns:
            List[VulnerabilityFinding]: Merged findings. Duplicate ids across
                agents are kept.
        """
        if not contract_files:
            logger.info("No contract files to analyze")
            return []

        if len(contract_files) > self.max_contract_files:
            logger.info(
                "Analyzing the first %d of %d contract files",
                self.max_contract_files, len(contract_files)
            )
        source_bundle = build_source_bundle(contract_files, limit=self.max_contract_files)

        results = await self.run_specialized(source_bundle, model)
        findings = fold_results(results)

        if findings:
            return findings

        logger.info("No findings from specialized agents, running %s", self.fallback_agent.name)
        fallback_result = await self.fallback_agent.analyze(source_bundle, model)
        return fold_results([fallback_result])
