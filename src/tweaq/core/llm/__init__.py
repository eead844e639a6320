"""
LLM Provider Layer -- text generation for the Strategy Executor.

Supports OpenAI, Anthropic, Google, Ollama, Groq, Mistral, Together
and OpenRouter.
"""
