"""Live preview: variable resolution, template expansion and document assembly."""
