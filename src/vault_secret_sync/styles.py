"""Custom styling for questionary prompts.

The operator only prompts when run from a workstation with ``--select``
to pick a kubeconfig context.
"""

from questionary import Style

PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#af87ff bold"),  # Purple question mark
        ("question", "bold"),
        ("answer", "fg:#ff87d7 bold"),  # Pink submitted answer
        ("pointer", "fg:#ff87d7 bold"),
        ("highlighted", "fg:#1c1c1c bg:#ff87d7 bold"),  # Dark text on pink background
        ("instruction", "fg:#6c6c6c italic"),
        ("text", ""),
    ]
)

# Icon prefixes for prompts
POINTER = "❯ "
QMARK = "? "
