from typing import Any, Awaitable, Callable, Dict, Sequence
from langgraph.graph import StateGraph, END
from app.models.stage import StageDefinition
from app.models.state import PipelineState

NodeFn = Callable[[PipelineState], Awaitable[Dict[str, Any]]]

ASSEMBLE_NODE = "assemble"

def stage_node_name(index: int) -> str:
    return f"stage_{index}"

def _route_after_stage(next_node: str) -> Callable[[PipelineState], str]:
    """Stop at the first failed stage, otherwise move on."""
    def route(state: PipelineState) -> str:
        return END if state.get("error") else next_node
    return route

def create_workflow(
    stages: Sequence[StageDefinition],
    make_stage_node: Callable[[int, StageDefinition], NodeFn],
    assemble_node: NodeFn,
):
    """Create and return the compiled pipeline graph.

    One node per stage in order, each followed by a conditional edge that
    ends the run when the stage reported an error. The assemble node runs
    only after every stage succeeded.
    """
    workflow = StateGraph(PipelineState)

    # Add nodes
    names = [stage_node_name(i) for i in range(len(stages))]
    for i, stage in enumerate(stages):
        workflow.add_node(names[i], make_stage_node(i, stage))
    workflow.add_node(ASSEMBLE_NODE, assemble_node)

    # Set entry point and linear flow
    workflow.set_entry_point(names[0] if names else ASSEMBLE_NODE)
    for i, name in enumerate(names):
        next_node = names[i + 1] if i + 1 < len(names) else ASSEMBLE_NODE
        workflow.add_conditional_edges(
            name,
            _route_after_stage(next_node),
            {
                next_node: next_node,
                END: END
            }
        )
    workflow.add_edge(ASSEMBLE_NODE, END)

    return workflow.compile()

def recursion_limit(stage_count: int) -> int:
    """Graph steps needed for a full run, with headroom."""
    return stage_count + 5
