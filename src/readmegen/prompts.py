"""Prompt templates for README generation.

Static prompt fragments plus the pure functions that assemble them.
No I/O: the same config always yields a byte-identical instruction.
"""

from .schemas import GenerationConfig, ReadmeStyle

# ---------------------------------------------------------------------------
# Base instruction
# ---------------------------------------------------------------------------

BASE_INSTRUCTION: str = """You are a Senior Principal Engineer at a top-tier tech firm (like Vercel or Stripe).
Your goal is to generate an ELITE, industry-standard README.md.

STYLE GUIDELINES:
- Use modern SVG icons (e.g., skill-icons or simple icons) for the Tech Stack.
- Include professional Shields.io badges (Stars, Forks, License, Version).
- Structure with deep hierarchy: Features (with emojis), Roadmap, Architecture (Mermaid), and Detailed Installation.
- Create a "Quick Start" vs "Full Documentation" section.
- Use clean Markdown tables for API documentation or Config options.
- Ensure any code blocks are accurately syntax-highlighted.
- NEVER include meta-talk like "Here is your readme". ONLY output the raw markdown."""

# ---------------------------------------------------------------------------
# Additive clauses
# ---------------------------------------------------------------------------

# Exactly one of these is appended, right after the base instruction.
STYLE_CLAUSES: dict[ReadmeStyle, str] = {
    ReadmeStyle.MINIMAL: "\n- Keep it concise: 5-7 sections max, focus on Quick Start.",
    ReadmeStyle.STANDARD: "\n- Balance detail with readability: Include all essential sections.",
    ReadmeStyle.ENTERPRISE: (
        "\n- Maximum detail: Architecture diagrams, security policies, CI/CD, "
        "deployment guides, monitoring setup."
    ),
}

ARCHITECTURE_CLAUSE: str = "\n- MUST include a Mermaid architecture diagram showing system components."
SECURITY_CLAUSE: str = "\n- MUST include a Security section with vulnerability reporting and best practices."
CONTRIBUTING_CLAUSE: str = "\n- MUST include detailed Contributing guidelines with PR process and code standards."

# Lead-in placed before the repository context in the user message.
USER_MESSAGE_PREFIX: str = "Analyze the following project data and build a high-conversion, professional README:"


def build_instruction(config: GenerationConfig) -> str:
    """Compose the system instruction for *config*.

    Order is fixed: base, style clause, then architecture, security and
    contributing clauses for whichever flags are set.
    """
    parts = [BASE_INSTRUCTION, STYLE_CLAUSES[ReadmeStyle(config.style)]]
    if config.include_architecture:
        parts.append(ARCHITECTURE_CLAUSE)
    if config.include_security:
        parts.append(SECURITY_CLAUSE)
    if config.include_contributing:
        parts.append(CONTRIBUTING_CLAUSE)
    return "".join(parts)


def build_user_message(context_text: str) -> str:
    return f"{USER_MESSAGE_PREFIX}\n{context_text}"


def build_messages(config: GenerationConfig, context_text: str) -> list[dict[str, str]]:
    """System + user message pair sent to the provider."""
    return [
        {"role": "system", "content": build_instruction(config)},
        {"role": "user", "content": build_user_message(context_text)},
    ]
