"""voxa.core

Conversation state, directive splitting, parsing glue, merging and dispatch.
Entry point: voxa.core.orchestrator.Pipeline
"""
