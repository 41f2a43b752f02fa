"""
Prompts Module - prompt templates for every mode the gateway serves.

- assistant_prompts: persona + site content + language rule for chat
- mode_prompts: image, video concept, follow-up suggestions, connectivity probe
- analysis_prompts: the deep analysis panel and the synthesis instruction
"""
