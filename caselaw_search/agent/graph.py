"""
LangGraph Workflow Definition
Defines the search execution flow
"""

from langgraph.graph import END, StateGraph

from .nodes import SearchNodes
from .state import SearchState


def create_search_graph(nodes: SearchNodes) -> StateGraph:
    """
    Create the search workflow: analyze → search → synthesize
    """
    workflow = StateGraph(SearchState)

    workflow.add_node("analyze", nodes.analyze_query)
    workflow.add_node("search", nodes.search_cases)
    workflow.add_node("synthesize", nodes.synthesize_answer)

    workflow.set_entry_point("analyze")
    workflow.add_edge("analyze", "search")
    workflow.add_edge("search", "synthesize")
    workflow.add_edge("synthesize", END)

    return workflow
