"""Shared constants used across the application."""

import re

# Reference Extraction Constants
# ------------------------------

ISSUE_REFERENCE_PATTERN = re.compile(r"#(\d+)")
"""Pattern to match lightweight issue/PR references (#123 format)."""

TICKET_REFERENCE_TEMPLATE = r"\b{project_key}-\d+\b"
"""Template for the ticket key pattern; project_key must already be regex-escaped."""

TRAILING_PARENTHESIZED_ISSUE_PATTERN = re.compile(r"\s*\(#\d+\)\s*$")
"""Pattern to match a trailing ' (#123)' decoration on a commit title."""

TRAILING_BARE_ISSUE_PATTERN = re.compile(r"\s*#\d+\s*$")
"""Pattern to match a trailing ' #123' decoration on a commit title."""

SHORT_SHA_LENGTH = 7
"""Number of SHA characters used as a commit's short id."""

# Announcement Formatting Constants
# ---------------------------------

BULLET = "•"
"""Bullet marker that starts every change line in a rendered announcement."""

DEFAULT_RELEASE_BRANCH_PREFIX = "releases/"
"""Prefix prepended to a release id to form its branch name."""

ANNOUNCEMENT_HEADER_TEMPLATE = "*Deploying to prod* 🚀\n*Branch:* `{branch}`\n*Changes:*"
"""Header block of every rendered announcement."""

NO_CHANGES_TEXT = "No commits found in this release."
"""Text used in place of the change list when nothing was found."""

NO_CHANGES_SELECTED_TEXT = "No changes selected."
"""Text used in place of the change list when the user deselected everything."""

TEMPLATE_RELEASE_NUMBER_PLACEHOLDER = "{{releaseNumber}}"
TEMPLATE_CHANGE_COUNT_PLACEHOLDER = "{{changeCount}}"

ELLIPSIS = "..."
"""Marker appended to a line that was hard-truncated while chunking."""

# Slack Constants
# ---------------

SLACK_MAX_SECTION_TEXT_LENGTH = 3000
"""Slack's maximum length of a section block's text."""

SLACK_MAX_MESSAGE_LENGTH = 4000
"""Recommended maximum length of a chat.postMessage text before splitting."""

SLACK_MAX_BUTTON_VALUE_LENGTH = 2000
"""Slack's maximum length of a button value, which carries the selection token."""

SLACK_MAX_CHECKBOX_OPTIONS = 10
"""Slack's maximum number of options in a single checkboxes element."""

SLACK_MAX_OPTION_TEXT_LENGTH = 75
"""Slack's maximum length of a checkbox option's text."""

SELECT_CHANGES_ACTION_PREFIX = "select_changes_"
SEND_ANNOUNCEMENT_ACTION_ID = "send_announcement"
CANCEL_ANNOUNCEMENT_ACTION_ID = "cancel_announcement"

SELECTION_DIGEST_LENGTH = 100
"""Number of characters of the concatenated change lines kept in a simplified token."""

# Rate Limiting Constants
# -----------------------

DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 5 * 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 10
