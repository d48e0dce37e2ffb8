"""Pure renderers: state in, ANSI screen text out."""
