"""
AI Module - routing requests across upstream AI providers.

- providers: wire-format adapters (chat-completions, messages, generate-content)
- router: retrying fetcher and the fallback chain
- relay: streaming pass-through / transcoding and response draining
- analysis: deep-analysis fan-out/fan-in
- prompts: system prompts
- monitoring: structured logging
"""
