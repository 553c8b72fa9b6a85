"""AstrBot plugin driving the OpenAI Images API (generation, edit, variation)."""
