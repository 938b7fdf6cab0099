"""xmarks: personal bookmark archive with LLM topic classification."""
