"""
Topic/price similarity used to compute alternatives on the server when the
neighbor graph has nothing for an offer.
"""

import re
from datetime import datetime

TOPIC_PATTERNS = {
    "ecommerce": r"\b(dropshipping|shopify|amazon\s+fba|e[-\s]?commerce|online\s+store|product\s+research|amazon|ebay|etsy|facebook\s+ads|google\s+ads|product\s+sourcing|aliexpress|wholesale|retail|online\s+selling|marketplace|brand\s+building|private\s+label|inventory|fulfillment)\b",
    "daytrading": r"\b(day\s*trading|forex|fx\s*trading|scalping|swing\s*trading|technical\s*analysis|chart\s*patterns|price\s*action|indicator(s)?|currency\s*trading|pip(s)?|spread|leverage|margin|mt4|mt5|trading\s*signals|market\s*analysis|trading\s*strategy|risk\s*management)\b",
    "cryptotrading": r"\b(crypto\s*trading|bitcoin|ethereum|altcoin(s)?|cryptocurrency|blockchain|defi|nft\s*trading|binance|coinbase|trading\s*bot|crypto\s*signals|hodl|spot\s*trading|futures\s*trading|margin\s*trading|crypto\s*analysis)\b",
    "stocktrading": r"\b(stock\s*trading|stocks|equities|options\s*trading|penny\s*stocks|dividend(s)?|portfolio|wall\s*street|nasdaq|dow\s*jones|s&?p\s*500|market\s*cap|earnings|bull\s*market|bear\s*market|value\s*investing|growth\s*stocks)\b",
    "sportsbetting": r"\b(sports\s*betting|sportsbook|bet(ting)?|gambling|odds|handicapping|picks|tipster(s)?|bookmaker|matched\s*betting|arbitrage\s*betting|betting\s*strategy|football|basketball|soccer|tennis|horse\s*racing|casino|poker)\b",
    "realestate": r"\b(real\s*estate|property|rental|landlord|flip|wholesale|airbnb|fix\s*and\s*flip|buy\s*and\s*hold|reit(s)?|mortgage|foreclosure|investment\s*property|commercial\s*real\s*estate|residential)\b",
    "digitalmarketing": r"\b(digital\s*marketing|social\s*media\s*marketing|smm|instagram|tiktok|youtube|facebook\s*marketing|content\s*creation|influencer|affiliate\s*marketing|email\s*marketing|lead\s*generation|conversion|funnel|copywriting)\b",
    "business": r"\b(business|entrepreneur(ship)?|startup|consulting|coaching|mentoring|scaling|revenue|profit|business\s*model|saas|agency|freelancing|side\s*hustle)\b",
    "fitness": r"\b(fitness|workout|gym|bodybuilding|weight\s*loss|nutrition|diet|muscle\s*building|personal\s*training|health\s*coaching|supplements?)\b",
    "education": r"\b(course|training|masterclass|tutorial|education|learning|skill\s*development|certification|academy|bootcamp|workshop)\b",
    "tools": r"\b(software|tool|automation|bot|system|platform|app|plugin|script|api|saas\s*tool)\b",
    "technology": r"\b(ai|artificial\s*intelligence|machine\s*learning|coding|programming|development|tech|blockchain|web\s*development|app\s*development)\b",
}

_TOPIC_REGEXES = {topic: re.compile(p, re.IGNORECASE) for topic, p in TOPIC_PATTERNS.items()}

ANCHOR_PATTERNS = {
    "cryptotrading": ["{name} crypto signals", "{name} trading bot", "{name} crypto course"],
    "daytrading": ["{name} forex strategy", "{name} trading signals", "{name} day trading course"],
    "stocktrading": ["{name} stock picks", "{name} options course", "{name} trading strategy"],
    "ecommerce": ["{name} dropshipping course", "{name} Shopify training", "{name} e-commerce guide"],
    "sportsbetting": ["{name} betting tips", "{name} sports picks", "{name} betting strategy"],
    "business": ["{name} business course", "{name} entrepreneur training", "{name} consulting"],
    "fitness": ["{name} workout plan", "{name} fitness program", "{name} training guide"],
    "education": ["{name} masterclass", "{name} online course", "{name} training program"],
    "digitalmarketing": ["{name} marketing course", "{name} social media training", "{name} SEO guide"],
    "realestate": ["{name} property course", "{name} real estate training", "{name} investment guide"],
    "tools": ["{name} software", "{name} automation tool", "{name} platform"],
    "technology": ["{name} tech course", "{name} coding bootcamp", "{name} development training"],
}

TOPIC_DESCRIPTIONS = {
    "cryptotrading": "Discover other cryptocurrency trading courses, signal services, and blockchain education programs",
    "daytrading": "Browse additional forex courses, day trading strategies, and technical analysis training programs",
    "stocktrading": "Explore more stock trading courses, options strategies, and investment education programs",
    "ecommerce": "Find other e-commerce courses, dropshipping guides, and online business training programs",
    "sportsbetting": "Check out additional sports betting guides, tipster services, and gambling strategy courses",
    "business": "Discover more business courses, entrepreneur training, and professional development programs",
    "fitness": "Browse other fitness programs, workout plans, and health coaching services",
    "education": "Explore additional online courses, masterclasses, and skill development programs",
    "digitalmarketing": "Find more digital marketing courses, social media training, and growth strategy programs",
    "realestate": "Discover other real estate courses, property investment guides, and rental income strategies",
    "tools": "Browse additional software tools, automation platforms, and productivity solutions",
    "technology": "Explore more tech courses, coding bootcamps, and development training programs",
}

EMPTY_DESCRIPTION = "Explore other verified promo codes and exclusive offers"
COURSE_DESCRIPTION = "Browse other educational courses and training programs with exclusive discounts"
GENERIC_DESCRIPTION = "Discover similar verified offers and exclusive promo codes in related categories"

TOPIC_WEIGHT = 0.8
PRICE_WEIGHT = 0.2
MIN_SCORE = 0.1

_PRICE_PREFIX = re.compile(r"^(from\s+|starting\s+at\s+|only\s+)", re.IGNORECASE)
_PRICE_SUFFIX = re.compile(r"\s+(per\s+month|/month|monthly|/mo|one-time|lifetime)", re.IGNORECASE)
_PRICE_NUMBER = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def extract_topics(name: str | None = "", description: str | None = "") -> list[str]:
    text = f"{name or ''} {description or ''}".lower()
    return [topic for topic, regex in _TOPIC_REGEXES.items() if regex.search(text)]


def jaccard(a, b) -> float:
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    set_a, set_b = set(a), set(b)
    return len(set_a & set_b) / len(set_a | set_b)


def parse_price_to_cents(price: str | None) -> int | None:
    """Parse a free-text price into cents. None if unparseable."""
    if not price or not isinstance(price, str):
        return None

    normalized = price.lower().strip()
    if normalized in ("free", "$0", "0"):
        return 0

    cleaned = _PRICE_PREFIX.sub("", normalized, count=1)
    cleaned = _PRICE_SUFFIX.sub("", cleaned, count=1)
    cleaned = re.sub(r"[^\d.,]", "", cleaned).replace(",", "")
    if not cleaned:
        return None

    match = _PRICE_NUMBER.match(cleaned)
    if not match:
        return None
    num = float(match.group(0))

    # Small numbers are dollars, large ones are already cents
    return round(num * 100) if num < 1000 else round(num)


def price_affinity(price_a: str | None, price_b: str | None) -> float:
    cents_a = parse_price_to_cents(price_a)
    cents_b = parse_price_to_cents(price_b)

    if cents_a == 0 and cents_b == 0:
        return 1.0
    if (cents_a == 0) != (cents_b == 0):
        return 0.0
    if cents_a is None or cents_b is None:
        return 0.5

    return min(cents_a, cents_b) / max(cents_a, cents_b)


def generate_anchor_text(alternative, common_topics: list[str]) -> str:
    name = alternative.name
    if common_topics:
        patterns = ANCHOR_PATTERNS.get(common_topics[0])
        if patterns:
            text = (alternative.description or "").lower()
            if "signal" in text or "pick" in text:
                pattern = patterns[0]
            elif "course" in text or "training" in text or "education" in text:
                pattern = patterns[2]
            elif "bot" in text or "tool" in text or "software" in text:
                pattern = patterns[1]
            else:
                pattern = patterns[0]
            return pattern.format(name=name)

    if alternative.category:
        return f"{name} {alternative.category.lower()}"
    return name


def generate_editorial_description(current, alternatives: list, overrides: dict | None = None) -> str:
    override = (overrides or {}).get(current.slug)
    if isinstance(override, str) and override:
        return override

    if not alternatives:
        return EMPTY_DESCRIPTION

    topics = extract_topics(current.name, current.description)
    if topics and topics[0] in TOPIC_DESCRIPTIONS:
        return TOPIC_DESCRIPTIONS[topics[0]]

    if "course" in (current.description or "").lower():
        return COURSE_DESCRIPTION
    return GENERIC_DESCRIPTION


def score_alternatives(current, candidates, limit: int = 6) -> list[dict]:
    """
    Rank ``candidates`` against ``current``.

    Returns dicts ``{"whop", "score", "anchor_text"}``, best first. Candidates
    scoring at or below MIN_SCORE are dropped.
    """
    current_topics = extract_topics(current.name, current.description)
    scored = []
    for candidate in candidates:
        if candidate.id == current.id:
            continue
        candidate_topics = extract_topics(candidate.name, candidate.description)
        score = (
            jaccard(current_topics, candidate_topics) * TOPIC_WEIGHT
            + price_affinity(current.price, candidate.price) * PRICE_WEIGHT
        )
        if score <= MIN_SCORE:
            continue
        common = [t for t in current_topics if t in candidate_topics]
        scored.append({
            "whop": candidate,
            "score": score,
            "anchor_text": generate_anchor_text(candidate, common),
        })

    scored.sort(
        key=lambda s: (s["score"], s["whop"].rating or 0, s["whop"].created_at or datetime.min),
        reverse=True,
    )
    return scored[:limit]
