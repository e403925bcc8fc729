"""Grandeur Salon assistant — chat-based appointment management.

Architecture Overview
=====================

A customer chats with the assistant to view, reschedule or cancel salon
appointments.  Each chat turn runs through a **LangGraph** state machine:

1. **request_model** — sends the customer's text (or a tool result) to Claude
   through ``langchain-anthropic``.  The model either answers in text or asks
   for a tool call.

2. **run_tool** — executes the first requested tool against the in-memory
   appointment book and feeds the structured result back to the model.

Routing: request_model → (tool call?) → run_tool → request_model (loop until a
text-only reply, an unknown tool, or the iteration cap → END)

Key Design Decisions
--------------------
- **One tool call per iteration**: extra calls in the same model reply are
  dropped, and the session closes them as "not executed".
- **Iteration cap**: at most ``MAX_TOOL_ITERATIONS`` tool runs per turn, then a
  fallback message.
- **Faults become messages**: init failures, model errors, unknown tools all
  end as exactly one bot message in the transcript.
- **Shared book, isolated sessions**: the appointment store is global and
  mutates under a lock; each conversation has its own model context and log.
- **Dual Interface**: FastAPI server (production) + CLI chat loop (development).

Package Structure
-----------------
- ``src/agent.py`` — turn graph (the orchestration loop)
- ``src/conversation.py`` — turn boundary, transcript, conversation pool
- ``src/models.py`` — pydantic domain records and the tool-result envelope
- ``src/config.py`` — configuration from environment variables
- ``src/prompts.py`` — system prompt and keyword buttons
- ``src/server.py`` — FastAPI application
- ``src/main.py`` — CLI chat interface
- ``src/services/`` — appointment store, message log, model session, metrics
- ``src/tools/`` — tool registry and the three appointment tools
- ``src/api/`` — FastAPI routes and Pydantic schemas
"""
