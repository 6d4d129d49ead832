import asyncio
import logging
from functools import lru_cache
from typing import Annotated, Any, Literal

from typing_extensions import TypedDict

from langgraph.graph import StateGraph, START
from langgraph.graph.message import add_messages
from langgraph.config import get_stream_writer
from langchain_openai import ChatOpenAI
from langchain_core.messages import SystemMessage, ToolMessage

import config
from models import Location
from tools import tools, tools_by_name

logger = logging.getLogger(__name__)

MAX_ITERATIONS = config.MAX_ITERATIONS
MAX_TOOL_RESULT_LENGTH = 4000

SYSTEM_PROMPT_TEMPLATE = """You are an environmental data assistant with access to real environmental APIs through MCP server tools.

IMPORTANT: User's location is: {name} (Latitude: {latitude}, Longitude: {longitude})

When users ask for environmental data, AUTOMATICALLY call the appropriate tool using these coordinates:
- Latitude: {latitude}
- Longitude: {longitude}

Available tools:
- get_weather_data: current temperature, humidity, precipitation and wind
- get_precipitation_history: rainfall totals over recent days (drought, wet spells)
- get_groundwater_trend: groundwater storage changes from GRACE satellites
- get_soil_moisture: satellite soil moisture from SMAP (irrigation, drought stress)
- get_soil_properties: soil composition and pH from SoilGrids
- get_crop_prices: producer prices for a crop in a country (needs country and commodity; ask if unclear)
- identify_crops: which crop is grown at a location (contiguous United States only)
- search_earthquakes: recent earthquakes near the location
- get_comprehensive_environmental_data: a combined overview when the user asks about conditions in general

You should ALWAYS use the tools when users ask about environmental data. Don't ask for location - you already have it!
You may call several tools at once when a question needs more than one dataset."""


class State(TypedDict):
    """State schema for the chatbot graph."""
    messages: Annotated[list, add_messages]
    location: Location
    iteration_count: int


def build_system_prompt(location: Location) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(
        name=location.name,
        latitude=location.latitude,
        longitude=location.longitude,
    )


@lru_cache(maxsize=1)
def get_llm() -> ChatOpenAI:
    """Build the chat model. Raises ConfigurationError if no API key is set."""
    return ChatOpenAI(
        model=config.OPENAI_MODEL,
        temperature=0,
        streaming=True,
        api_key=config.get_openai_api_key(),
    )


@lru_cache(maxsize=1)
def get_llm_with_tools():
    return get_llm().bind_tools(tools)


def _truncate(text: str) -> str:
    if len(text) <= MAX_TOOL_RESULT_LENGTH:
        return text
    return text[:MAX_TOOL_RESULT_LENGTH] + "\n\n[Result truncated]"


async def chatbot(state: State):
    """LLM decides whether to call a tool or respond directly."""
    writer = get_stream_writer()
    writer({"type": "node_start", "node": "chatbot"})

    messages = state["messages"]
    if not messages or not isinstance(messages[0], SystemMessage):
        messages = [SystemMessage(content=build_system_prompt(state["location"])), *messages]

    # Out of tool iterations: make the model answer with what it has
    if state.get("iteration_count", 0) >= MAX_ITERATIONS:
        llm = get_llm()
    else:
        llm = get_llm_with_tools()

    return {"messages": [await llm.ainvoke(messages)]}


async def _run_tool_call(tool_call: dict, location: Location) -> str:
    tool_name = tool_call["name"]
    tool_fn = tools_by_name.get(tool_name)
    if tool_fn is None:
        return f"❌ Unknown tool: {tool_name}"

    # The turn's location is passed explicitly; the model never sees this argument
    args = {**tool_call.get("args", {}), "location": location}
    try:
        result = await tool_fn.ainvoke(args)
    except Exception as e:
        logger.exception("Tool %s failed", tool_name)
        return f"❌ Error running {tool_name}: {e}"
    return _truncate(str(result))


async def tool_node(state: State):
    """Execute the tool calls made by the LLM, concurrently."""
    writer = get_stream_writer()
    location = state["location"]
    tool_calls = state["messages"][-1].tool_calls

    for tool_call in tool_calls:
        writer({
            "type": "tool_call",
            "tool": tool_call["name"],
            "args": tool_call.get("args", {}),
        })

    outputs = await asyncio.gather(*(_run_tool_call(tc, location) for tc in tool_calls))

    results = []
    for tool_call, output in zip(tool_calls, outputs):
        writer({
            "type": "tool_result",
            "tool": tool_call["name"],
            "result": output,
        })
        results.append(
            ToolMessage(content=output, tool_call_id=tool_call["id"], name=tool_call["name"])
        )

    return {
        "messages": results,
        "iteration_count": state.get("iteration_count", 0) + 1,
    }


def should_continue(state: State) -> Literal["tool_node", "__end__"]:
    """Route to tool_node if LLM made tool calls, otherwise end."""
    last_message = state["messages"][-1]
    if state.get("iteration_count", 0) >= MAX_ITERATIONS:
        return "__end__"
    if hasattr(last_message, "tool_calls") and last_message.tool_calls:
        return "tool_node"
    return "__end__"


def initial_state(messages: list[Any], location: Location) -> dict:
    return {"messages": messages, "location": location, "iteration_count": 0}


# Build the graph
graph_builder = StateGraph(State)
graph_builder.add_node("chatbot", chatbot)
graph_builder.add_node("tool_node", tool_node)

graph_builder.add_edge(START, "chatbot")
graph_builder.add_conditional_edges("chatbot", should_continue, ["tool_node", "__end__"])
graph_builder.add_edge("tool_node", "chatbot")

graph = graph_builder.compile()
