"""Report assembly and export collaborators (Excel, JSON, console, prompts)."""
