"""Tree rewriting: full macro expansion and symbol substitution."""
