"""Chat feature package: support conversations with an LLM-backed agent.

A user message is stored with its conversation, a bounded window of the
history is sent to the completion provider, and the reply is stored and
returned. Conversations are created lazily on the first message.
"""
