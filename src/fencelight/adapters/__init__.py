"""Default collaborators: Pygments grammars and renderer, Markdown host."""
