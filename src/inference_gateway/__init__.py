"""
Inference Gateway package.

Provides:
- Request validation, model registry and bounded generation dispatch
- Pluggable generation engines (simulated, OpenAI-compatible upstream, llama.cpp GGUF)
- FastAPI HTTP surface with health and model listing endpoints
"""

__version__ = "0.1.0"
