"""Storage, search and layout components for NoteGraph."""
