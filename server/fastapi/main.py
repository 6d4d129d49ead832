import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_core.messages import AIMessageChunk

import config
import mcp_client
from graph import graph, get_llm_with_tools, initial_state
from location import format_location_annotation, resolve_location
from mcp_client import ToolCallError
from models import ChatRequest, ChatResponse, ToolCallRequest
from tools import tool_specs

config.setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Refuse to start without the credentials every chat turn needs
    config.validate_config()
    logger.info("Using MCP relay %s, upstream %s", config.MCP_RELAY_URL, config.MCP_SERVER_URL)
    yield


app = FastAPI(
    title="Environmental Data Chat API",
    description="AI assistant for weather, soil, water and crop data backed by an MCP server",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _sse(event: dict) -> str:
    return f"data: {json.dumps(event)}\n\n"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failed_request(e: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": "Failed to process request", "message": str(e)},
        status_code=500,
    )


def _prepare_turn(request: ChatRequest):
    """Resolve the location and build the graph input. Raises on configuration problems."""
    location = resolve_location(request.location, request.messages)
    get_llm_with_tools()
    messages = [{"role": m.role, "content": m.content} for m in request.messages]
    return location, initial_state(messages, location)


def _stream_events(mode: str, chunk) -> list[dict]:
    if mode == "custom":
        # Custom events (tool_call, tool_result, node_start) pass through directly
        return [chunk]

    if mode == "messages":
        # chunk is a tuple: (MessageChunk, metadata)
        msg_chunk, metadata = chunk
        # Only stream AI message tokens, not tool results
        if isinstance(msg_chunk, AIMessageChunk) and msg_chunk.content:
            return [{"type": "token", "content": msg_chunk.content}]
        return []

    if mode == "updates":
        # chunk is a dict: {node_name: {state_updates}}
        return [{"type": "node_complete", "node": node_name} for node_name in chunk]

    return []


# --- Endpoints ---


@app.get("/")
async def root():
    return {"message": "Hello from Environmental Data Chat API"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """Chat endpoint using LangGraph (non-streaming)."""
    logger.info("Received %d messages", len(request.messages))
    try:
        location, state = _prepare_turn(request)
        result = await asyncio.wait_for(graph.ainvoke(state), timeout=config.TURN_TIMEOUT_SECONDS)
    except TimeoutError:
        logger.warning("Chat turn timed out after %ss", config.TURN_TIMEOUT_SECONDS)
        return JSONResponse(
            {"error": "Request timed out", "message": f"No response within {config.TURN_TIMEOUT_SECONDS:g} seconds"},
            status_code=504,
        )
    except Exception as e:
        logger.exception("Chat API error")
        return _failed_request(e)

    ai_message = result["messages"][-1]
    return ChatResponse(response=ai_message.content, location=location)


@app.post("/api/chat")
async def chat_stream(request: ChatRequest):
    """Streaming chat endpoint - streams tokens and graph updates as server-sent events."""
    logger.info("Received %d messages", len(request.messages))
    try:
        location, state = _prepare_turn(request)
    except Exception as e:
        logger.exception("Chat API error")
        return _failed_request(e)

    async def event_generator():
        yield _sse({
            "type": "location",
            "location": location.model_dump(),
            "annotation": format_location_annotation(location),
        })

        stream = graph.astream(state, stream_mode=["messages", "updates", "custom"])
        deadline = asyncio.get_running_loop().time() + config.TURN_TIMEOUT_SECONDS
        try:
            while True:
                try:
                    async with asyncio.timeout_at(deadline):
                        mode, chunk = await anext(stream)
                except StopAsyncIteration:
                    break
                for event in _stream_events(mode, chunk):
                    yield _sse(event)
        except TimeoutError:
            logger.warning("Chat stream timed out after %ss", config.TURN_TIMEOUT_SECONDS)
            yield _sse({
                "type": "error",
                "message": f"Response timed out after {config.TURN_TIMEOUT_SECONDS:g} seconds. Please try again.",
            })
            return
        except Exception as e:
            logger.exception("Chat stream failed")
            yield _sse({"type": "error", "message": f"Failed to generate response: {e}"})
            return
        finally:
            await stream.aclose()

        # Signal stream completion
        yield _sse({"type": "done"})

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@app.post("/api/mcp-proxy")
async def mcp_proxy(body: ToolCallRequest):
    """Relay a tool call to the MCP server so its address stays server-side."""
    logger.info("Proxying MCP request for %s", body.tool_name)
    try:
        response = await mcp_client.mcp_server_request("POST", "/v1/functions/call", json_body=body.model_dump())
    except httpx.HTTPError as e:
        logger.error("Error proxying MCP request: %s", e)
        return JSONResponse(
            {"error": "Failed to proxy MCP request", "message": str(e) or type(e).__name__},
            status_code=500,
        )

    if not response.is_success:
        logger.error("MCP server error: %s %s", response.status_code, response.text)
        return JSONResponse(
            {
                "error": f"MCP Server error: {response.status_code} {response.reason_phrase}",
                "details": response.text,
            },
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError:
        return JSONResponse(
            {"error": "Invalid JSON from MCP server", "details": response.text},
            status_code=502,
        )


async def _fetch_mcp_json(path: str):
    response = await mcp_client.mcp_server_request("GET", path)
    if not response.is_success:
        raise ToolCallError(f"MCP Server error: {response.status_code} {response.reason_phrase}", status_code=response.status_code)
    return response.json()


@app.get("/api/tools")
async def list_tools():
    """Tools offered by the MCP server, plus the ones this assistant can call."""
    chat_tools = [spec.model_dump() for spec in tool_specs()]
    try:
        free, premium = await asyncio.gather(
            _fetch_mcp_json("/v1/tools/free"),
            _fetch_mcp_json("/v1/tools/premium"),
        )
    except (httpx.HTTPError, ToolCallError, ValueError) as e:
        logger.error("Error fetching tools: %s", e)
        return JSONResponse(
            {
                "success": False,
                "error": str(e) or "Failed to fetch tools",
                "free_tools": [],
                "premium_tools": [],
                "chat_tools": chat_tools,
            },
            status_code=500,
        )

    return {
        "success": True,
        "free_tools": free.get("free_tools", []) if isinstance(free, dict) else [],
        "premium_tools": premium.get("premium_tools", []) if isinstance(premium, dict) else [],
        "chat_tools": chat_tools,
    }


@app.get("/api/mcp-health")
async def mcp_health():
    try:
        data = await _fetch_mcp_json("/v1/health")
    except (httpx.HTTPError, ToolCallError, ValueError) as e:
        logger.error("MCP server health check failed: %s", e)
        return JSONResponse(
            {"success": False, "error": str(e) or "Health check failed", "timestamp": _timestamp()},
            status_code=500,
        )

    return {"success": True, "mcpServer": data, "timestamp": _timestamp()}
