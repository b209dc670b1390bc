"""Direct-task analysis and custom assistant prompts."""
