from gridist.planning.integration.run_context import RunContext
from gridist.planning.integration.agent_loop import AgentLoop, BaselineLoop, RunResult, RunStatus

__all__ = ["RunContext", "AgentLoop", "BaselineLoop", "RunResult", "RunStatus"]
