"""Read-only web views over multizork game transcripts."""

# SPDX-License-Identifier: GPL-3.0-or-later
