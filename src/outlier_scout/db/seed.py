"""Seed list of tracked channels (AI automation niche)."""

from outlier_scout.domain import TrackedChannel

SEED_AVG_VIEWS = 50000

# (channel_id, handle, channel_name, priority, tags)
_SEED_ROWS: list[tuple[str, str, str, int, list[str]]] = [
    # Major AI automation channels
    ("UCobVid_c2woyOam7RWDVoFA", "@matthew_berman", "Matthew Berman", 10, ["ai", "automation", "reviews", "tutorials"]),
    ("UCn9RZ4_LdSVA6q4dXbVIYig", "@mreflow", "Matt Wolfe", 10, ["ai", "tools", "news", "automation"]),
    ("UC2e7lWZqrNpSRaHPL-WJcaw", "@liamonyt", "Liam Ottley", 10, ["ai", "agency", "business", "automation"]),
    # Consistent creators
    ("UCGSyPaBoYdU_xwbBvMROqpw", "@AIJasonZ", "AI Jason", 9, ["ai", "tutorials", "chatgpt", "automation"]),
    ("UC-CNymS1P5KEZRTjHELGQMQ", "@aidrivengrowth", "World of AI", 9, ["ai", "news", "tools", "productivity"]),
    ("UCZ9qFEC82qM6Pk-54Q4TVWA", "@aiadvantage", "The AI Advantage", 8, ["ai", "productivity", "chatgpt", "tutorials"]),
    ("UCfYsT0_xJEd3kxE-LKzENlQ", "@aiexplained-official", "AI Explained", 8, ["ai", "research", "news", "analysis"]),
    ("UCDq7SjbgRKty5TgGH3sfvUg", "@ColeMedin", "Cole Medin", 8, ["ai", "coding", "tutorials", "development"]),
    # Regular content
    ("UCowOWMmYvmI2Q-bxkmV5N5g", "@AdrianTwarog", "Adrian Twarog", 7, ["ai", "design", "web", "tutorials"]),
    ("UCq3SgLo2F8gBMEp2vQnKGig", "@promptengineering", "Prompt Engineering", 7, ["ai", "prompts", "tutorials", "chatgpt"]),
    ("UC6-MYH8bCTH8RvnRJm4qmqw", "@AllAboutAI", "All About AI", 7, ["ai", "news", "tools", "reviews"]),
    ("UCxjfrYRpnT8KQByIDnhFPdA", "@MattVidPro", "MattVidPro AI", 7, ["ai", "news", "commentary", "reviews"]),
    # Emerging and niche
    ("UCRPd6lAQo0VeGn3PQGB1xBQ", "@OlivioSarikas", "Olivio Sarikas", 5, ["ai", "art", "midjourney", "tutorials"]),
    ("UCbc8FEVr_S7f0KQVPFgpNSQ", "@WesRoth", "Wes Roth", 5, ["ai", "news", "philosophy", "future"]),
    ("UCfYxKtdVWGCVYXU6q_YQsmw", "@David-Ondrej", "David Ondrej", 5, ["ai", "automation", "make", "tutorials"]),
    ("UCeKhK19R8bSx6pPuV4FxTbw", "@airevolution", "AI Revolution", 5, ["ai", "news", "future", "technology"]),
    ("UCd8pZxIZ3i2qX4YxXDhQzMA", "@aigrid", "AI Grid", 5, ["ai", "news", "tools", "updates"]),
    ("UCfKXPDZMIaZdAXvDdJVwKXg", "@aitools", "AI Tools", 5, ["ai", "tools", "reviews", "tutorials"]),
    ("UCqF9fkXJd3QqQzGMfN4gVag", "@aifoundations", "AI Foundations", 5, ["ai", "education", "tutorials", "basics"]),
    ("UCiA7fBQ0ZBD4FZN9lXqGRBA", "@aiandyandy", "AI Andy", 5, ["ai", "news", "commentary", "updates"]),
]


def seed_channels(refresh_interval_seconds: int = 21600) -> list[TrackedChannel]:
    """Build the seed channel list, never scraped and immediately due."""
    return [
        TrackedChannel(
            channel_id=channel_id,
            channel_name=name,
            handle=handle,
            avg_views=SEED_AVG_VIEWS,
            refresh_interval_seconds=refresh_interval_seconds,
            priority=priority,
            category="ai_automation",
            tags=list(tags),
        )
        for channel_id, handle, name, priority, tags in _SEED_ROWS
    ]
