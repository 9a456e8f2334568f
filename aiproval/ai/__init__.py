"""
Aiproval
AI module: document summaries for mockup review.

Submodules:
    - gateway: LLM Gateway (provider wrapper, availability, latency logging)
"""
