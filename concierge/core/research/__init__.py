"""Provider research: Places search, Gemini fallbacks and enrichment."""
