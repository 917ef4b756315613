"""Example notes loaded into a fresh session."""

import datetime
import logging
from datetime import timezone
from typing import List

from marknotes.models.schema import Note

logger = logging.getLogger(__name__)


def _ts(hour: int, minute: int) -> datetime.datetime:
    return datetime.datetime(2025, 8, 9, hour, minute, tzinfo=timezone.utc)


SEED_NOTES = [
    {
        "id": "1",
        "title": "Getting Started with the Notes App",
        "content": """# Welcome to Your Personal Notes App

This is a modern notes application with the following features:

## Key Features
- **Rich Formatting**: Write notes with headings, lists and code blocks, with live preview
- **Tagging System**: Organize notes with tags
- **Search**: Find notes quickly
- **Dark Mode**: Toggle between light and dark themes
- **Excel Storage**: Notes are saved in Excel format
- **GitHub Sync**: Backup your notes to GitHub

## Getting Started
1. Create a new note using the "New Note" button
2. Write your content
3. Add tags to organize your notes
4. Use the search bar to find specific notes

*Happy note-taking!*""",
        "tags": ["getting-started", "tutorial", "features"],
        "created_at": _ts(14, 0),
        "updated_at": _ts(14, 0),
    },
    {
        "id": "2",
        "title": "Markdown Syntax Guide",
        "content": """# Markdown Quick Reference

## Headers
```markdown
# H1 Header
## H2 Header
### H3 Header
```

## Text Formatting
- **Bold text**
- *Italic text*
- `Inline code`

## Lists
### Unordered List
- Item 1
- Item 2
- Item 3

### Ordered List
1. First item
2. Second item
3. Third item

## Links and Images
[Link text](https://example.com)
![Alt text](image-url)

## Code Blocks
```javascript
function hello() {
  console.log('Hello World!');
}
```

> This is a blockquote

---

*Use these syntax elements to format your notes beautifully!*""",
        "tags": ["markdown", "reference", "syntax", "tutorial"],
        "created_at": _ts(14, 5),
        "updated_at": _ts(14, 5),
    },
    {
        "id": "3",
        "title": "Project Ideas",
        "content": """# Project Ideas for Development

## Web Applications
- [ ] Personal dashboard
- [ ] Task management system
- [ ] Weather app with location services
- [ ] Recipe organizer

## Mobile Apps
- [ ] Habit tracker
- [ ] Expense tracker
- [ ] Fitness app

## Desktop Applications
- [ ] File organizer
- [ ] Password manager
- [ ] Screenshot tool

## Learning Goals
1. Master React hooks
2. Learn Node.js backends
3. Understand database design
4. Practice responsive design

**Priority**: Focus on web applications first, then expand to mobile development.""",
        "tags": ["projects", "ideas", "development", "todo"],
        "created_at": _ts(14, 10),
        "updated_at": _ts(14, 15),
    },
]


def seed_notes() -> List[Note]:
    """Build fresh Note objects for the example set, in display order."""
    notes = [Note(**data) for data in SEED_NOTES]
    logger.debug(f"Built {len(notes)} seed notes")
    return notes
