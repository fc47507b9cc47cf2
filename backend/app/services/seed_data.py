# Curated employers seeded before users start typing free-text company names,
# so the common ones resolve to a single canonical row from day one.
TOP_COMPANIES: list[dict[str, str]] = [
    # Tech
    {"name": "Google", "sector": "Technology"},
    {"name": "Apple", "sector": "Technology"},
    {"name": "Microsoft", "sector": "Technology"},
    {"name": "Amazon", "sector": "Technology"},
    {"name": "Meta (Facebook)", "sector": "Technology"},
    {"name": "Tesla", "sector": "Automotive/Technology"},
    {"name": "NVIDIA", "sector": "Technology"},
    {"name": "Intel", "sector": "Technology"},
    {"name": "Oracle", "sector": "Technology"},
    {"name": "IBM", "sector": "Technology"},
    # Finance
    {"name": "JPMorgan Chase", "sector": "Finance"},
    {"name": "Bank of America", "sector": "Finance"},
    {"name": "Goldman Sachs", "sector": "Finance"},
    {"name": "Morgan Stanley", "sector": "Finance"},
    {"name": "Citigroup", "sector": "Finance"},
    # Healthcare
    {"name": "Johnson & Johnson", "sector": "Healthcare"},
    {"name": "Pfizer", "sector": "Healthcare"},
    {"name": "UnitedHealth Group", "sector": "Healthcare"},
    {"name": "Merck", "sector": "Healthcare"},
    {"name": "Abbott Laboratories", "sector": "Healthcare"},
    # Retail
    {"name": "Walmart", "sector": "Retail"},
    {"name": "Target", "sector": "Retail"},
    {"name": "Home Depot", "sector": "Retail"},
    {"name": "Costco", "sector": "Retail"},
    {"name": "Lowe's", "sector": "Retail"},
    # Media/Entertainment
    {"name": "Disney", "sector": "Media/Entertainment"},
    {"name": "Netflix", "sector": "Media/Entertainment"},
    {"name": "Comcast", "sector": "Media/Entertainment"},
    {"name": "Warner Bros. Discovery", "sector": "Media/Entertainment"},
    {"name": "ViacomCBS", "sector": "Media/Entertainment"},
    # Telecommunications
    {"name": "AT&T", "sector": "Telecommunications"},
    {"name": "Verizon", "sector": "Telecommunications"},
    {"name": "T-Mobile", "sector": "Telecommunications"},
    # Consumer Goods
    {"name": "Procter & Gamble", "sector": "Consumer Goods"},
    {"name": "Coca-Cola", "sector": "Consumer Goods"},
    {"name": "PepsiCo", "sector": "Consumer Goods"},
    {"name": "Nike", "sector": "Consumer Goods"},
    {"name": "McDonald's", "sector": "Food & Beverage"},
    # Automotive
    {"name": "Ford", "sector": "Automotive"},
    {"name": "General Motors", "sector": "Automotive"},
    {"name": "Toyota", "sector": "Automotive"},
    {"name": "Honda", "sector": "Automotive"},
    # Energy
    {"name": "ExxonMobil", "sector": "Energy"},
    {"name": "Chevron", "sector": "Energy"},
    {"name": "Shell", "sector": "Energy"},
    # Aerospace & Defense
    {"name": "Boeing", "sector": "Aerospace & Defense"},
    {"name": "Lockheed Martin", "sector": "Aerospace & Defense"},
    {"name": "Raytheon Technologies", "sector": "Aerospace & Defense"},
    # Consulting
    {"name": "McKinsey & Company", "sector": "Consulting"},
    {"name": "Boston Consulting Group", "sector": "Consulting"},
]
