"""
gsdtools - planning state toolkit for GSD projects.

Maintains the on-disk planning tree that GSD agents read and mutate:

- .planning/ROADMAP.md      phase sections, goals, dependencies
- .planning/STATE.md        current position, decisions, blockers, session
- .planning/phases/NN-slug/ plans, summaries, context and research docs
- .planning/config.json     model profile and workflow switches

Also converts GSD command and agent definitions between the Claude,
OpenCode and Gemini dialects and installs them into a runtime's config dir.
"""

__version__ = "0.1.0"
