# src/clarity/services/classification_tables.py
"""
Lookup tables used by the endpoint classifier.

Tables are built once at import time and never mutated. Category order is
significant: when two categories end with the same score, the one declared
first wins.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Pattern, Sequence, Tuple

# ----------------------------------------
# Taxonomy
# ----------------------------------------
DEFAULT_CATEGORIES: Tuple[Dict[str, str], ...] = (
    {
        "slug": "llm-inference",
        "name": "LLM Inference",
        "description": "Chat, completion and embedding endpoints backed by language models.",
        "icon": "bot",
    },
    {
        "slug": "image-generation",
        "name": "Image Generation",
        "description": "Text-to-image, image editing and illustration services.",
        "icon": "image",
    },
    {
        "slug": "data-feeds",
        "name": "Data Feeds",
        "description": "Market prices, weather, news and other real-time data.",
        "icon": "chart",
    },
    {
        "slug": "security",
        "name": "Security",
        "description": "Contract audits, wallet screening and risk scoring.",
        "icon": "shield",
    },
    {
        "slug": "search",
        "name": "Search",
        "description": "Web search, lookup and retrieval APIs.",
        "icon": "search",
    },
    {
        "slug": "utilities",
        "name": "Utilities",
        "description": "QR codes, URL shortening, conversion and other tools.",
        "icon": "wrench",
    },
    {
        "slug": "defi",
        "name": "DeFi",
        "description": "Swaps, liquidity, yield and lending data.",
        "icon": "coins",
    },
    {
        "slug": "social",
        "name": "Social",
        "description": "Twitter/X, Farcaster and other social graph data.",
        "icon": "users",
    },
)

# ----------------------------------------
# Layer 1: known hosts
# ----------------------------------------
DOMAIN_CATEGORIES: Mapping[str, str] = MappingProxyType({
    "api.openai.com": "llm-inference",
    "api.anthropic.com": "llm-inference",
    "openrouter.ai": "llm-inference",
    "api.together.xyz": "llm-inference",
    "api.mistral.ai": "llm-inference",
    "api.replicate.com": "image-generation",
    "fal.run": "image-generation",
    "api.stability.ai": "image-generation",
    "api.coingecko.com": "data-feeds",
    "pro-api.coinmarketcap.com": "data-feeds",
    "api.openweathermap.org": "data-feeds",
    "newsapi.org": "data-feeds",
    "api.gopluslabs.io": "security",
    "api.chainabuse.com": "security",
    "api.exa.ai": "search",
    "api.tavily.com": "search",
    "serpapi.com": "search",
    "api.firecrawl.dev": "search",
    "api.qrserver.com": "utilities",
    "api.1inch.dev": "defi",
    "api.0x.org": "defi",
    "quote-api.jup.ag": "defi",
    "api.neynar.com": "social",
    "api.twitter.com": "social",
    "api.x.com": "social",
})

# ----------------------------------------
# Layer 2: URL path + query patterns
# ----------------------------------------
_SEG_END = r"(?:/|$|\?)"

PATH_PATTERNS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "llm-inference": (
        r"/v\d+/chat/completions",
        r"/(?:chat|completions?|generate-text|llm|inference|ask)" + _SEG_END,
        r"/embeddings?" + _SEG_END,
    ),
    "image-generation": (
        r"/v\d+/images",
        r"/(?:images?|img)/(?:generat|creat|edit)",
        r"/(?:text-to-image|txt2img|image-gen|imagine)" + _SEG_END,
    ),
    "data-feeds": (
        r"/(?:price|prices|ticker|ohlcv?|candles?)" + _SEG_END,
        r"/(?:weather|forecast|news|headlines)" + _SEG_END,
        r"/market[-_]?data",
    ),
    "security": (
        r"/(?:audit|scan|security|risk|honeypot|phishing)" + _SEG_END,
        r"/token[-_]?security",
    ),
    "search": (
        r"/(?:search|serp|lookup)" + _SEG_END,
        r"[?&](?:q|query)=",
    ),
    "utilities": (
        r"/(?:qr|qrcode|qr-code|shorten|convert|hash|resize|compress)" + _SEG_END,
    ),
    "defi": (
        r"/(?:swap|pools?|liquidity|yield|stake|staking|lend|borrow)" + _SEG_END,
    ),
    "social": (
        r"/(?:tweets?|casts?|profiles?|timeline|followers)" + _SEG_END,
        r"/farcaster/",
    ),
})

# ----------------------------------------
# Layer 3: keywords (score = keyword length)
# ----------------------------------------
CATEGORY_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "llm-inference": (
        "llm", "gpt", "claude", "chat", "completion", "text generation",
        "language model", "ai model", "inference", "prompt", "embedding",
        "openai", "anthropic", "mistral", "llama", "gemini",
    ),
    "image-generation": (
        "image", "picture", "photo", "dall-e", "dalle", "stable diffusion",
        "midjourney", "text-to-image", "text to image", "image generation",
        "generate image", "art", "illustration", "flux",
    ),
    "data-feeds": (
        "price", "prices", "market data", "feed", "ticker", "quote",
        "weather", "news", "stock", "forex", "exchange rate", "oracle",
        "data feed",
    ),
    "security": (
        "security", "audit", "scan", "verify", "verification", "wallet check",
        "contract scan", "vulnerability", "risk", "malware", "phishing", "scam",
    ),
    "search": (
        "search", "find", "lookup", "query", "google", "bing", "web search",
        "internet search", "serp",
    ),
    "utilities": (
        "qr", "qr code", "url", "shortener", "shorten", "convert", "converter",
        "encode", "decode", "hash", "utility", "tool", "resize", "compress",
    ),
    "defi": (
        "defi", "swap", "pool", "liquidity", "yield", "apy", "apr", "stake",
        "staking", "lending", "borrow", "trading", "dex", "amm", "uniswap", "aave",
    ),
    "social": (
        "twitter", "x.com", "tweet", "farcaster", "lens", "social", "profile",
        "follower", "post", "feed", "timeline", "mention",
    ),
})

# ----------------------------------------
# Tags (independent of category)
# ----------------------------------------
TAG_PATTERNS: Mapping[str, str] = MappingProxyType({
    "crypto": r"crypto|blockchain|web3|token|nft|eth|sol|btc",
    "ai": r"ai|artificial intelligence|machine learning|ml|neural",
    "realtime": r"real-?time|live|streaming",
    "free": r"free|no cost",
    "premium": r"premium|paid|subscription",
    "api": r"api|rest|graphql",
})


def _ordered_categories(*tables: Iterable[str]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for table in tables:
        for category in table:
            seen.setdefault(category, None)
    return tuple(seen)


@dataclass(frozen=True)
class ClassificationTables:
    """
    Immutable bundle of classifier inputs.

    ``category_order`` is the keyword table's order, followed by any category
    that only appears in the pattern or domain tables.
    """

    domains: Mapping[str, str]
    path_patterns: Mapping[str, Sequence[str]]
    keywords: Mapping[str, Sequence[str]]
    tag_patterns: Mapping[str, str]
    domain_score: int = 100
    path_score: int = 50
    category_order: Tuple[str, ...] = field(init=False)
    compiled_paths: Mapping[str, Tuple[Pattern[str], ...]] = field(init=False, repr=False)
    compiled_tags: Mapping[str, Pattern[str]] = field(init=False, repr=False)

    def __post_init__(self):
        object.__setattr__(
            self,
            "category_order",
            _ordered_categories(self.keywords, self.path_patterns, self.domains.values()),
        )
        object.__setattr__(
            self,
            "compiled_paths",
            MappingProxyType({
                category: tuple(re.compile(p, re.IGNORECASE) for p in patterns)
                for category, patterns in self.path_patterns.items()
            }),
        )
        object.__setattr__(
            self,
            "compiled_tags",
            MappingProxyType({
                tag: re.compile(pattern, re.IGNORECASE)
                for tag, pattern in self.tag_patterns.items()
            }),
        )


DEFAULT_TABLES = ClassificationTables(
    domains=DOMAIN_CATEGORIES,
    path_patterns=PATH_PATTERNS,
    keywords=CATEGORY_KEYWORDS,
    tag_patterns=TAG_PATTERNS,
)
