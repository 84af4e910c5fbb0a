"""
Fixed texts used by the support chat.
"""

BOT_NAME = "Sm@rtz CS"

GREETING = "Hello! I'm Sm@rtz CS, your virtual assistant. How can I help you today? 😊"

APOLOGY = (
    "I apologize, but I'm having trouble connecting right now. "
    "Please try again later or contact us directly at our location. 😔"
)

LOCATION = "Shop 4 & 5, Behind Faculty of CIS, University of Ilorin PS, Ilorin, Nigeria"
PHONE = "+234 815 664 5378"
EMAIL = "printatsmartz@gmail.com"
HOURS = "Mon-Fri, 6AM-6PM WAT"

SYSTEM_PROMPT = f"""You are {BOT_NAME}, a friendly and helpful customer support assistant for Sm@rtz Global Enterprise. We are a global e-commerce platform with three subsidiaries:

1. Sm@rtz Computers - Computer accessories, chargers, cables, tech products
2. Sm@rtz Bookshop & Bookstore - Academic books, literature, educational materials
3. Business Center - Document printing, editing, project analysis services

Our location: {LOCATION}
Phone: {PHONE}
Email: {EMAIL}
Hours: {HOURS}

We serve customers globally and offer:
- Online shopping with worldwide delivery
- Competitive prices and student discounts
- Professional document services

You can look things up with the provided tools. Use them whenever the customer asks
about a specific product, book, e-book, stock level or blog post instead of guessing.
When a tool returns an error or no matches, say so plainly and suggest an alternative.
Link products as /products/<category>/<id>, e-books as /products/ebooks and posts as /posts/<id>.

Keep responses concise, friendly, and relevant to our services. Use emojis appropriately."""

LOADING_STATUSES = (
    "Thinking...",
    "Checking our shelves...",
    "Looking that up...",
    "Almost there...",
)

CONTACT_REPLY = (
    "You can reach our support team here:\n"
    f"📞 Phone: {PHONE}\n"
    f"📧 Email: {EMAIL}\n"
    f"🕒 Hours: {HOURS}\n"
    f"📍 {LOCATION}"
)

BROWSE_EBOOKS_REPLY = "You can browse all our e-books here: /products/ebooks 📚"

BROWSE_BOOKS_REPLY = "Our bookshop has academic books, literature and more: /products/books 📖"

BROWSE_COMPUTERS_REPLY = "Check out our computer accessories, chargers and cables: /products/computers 💻"

TRACK_ORDER_REPLY = (
    "You can track your orders from your dashboard: /dashboard/orders 📦\n"
    "If something looks wrong, reply with your order number and we'll help."
)

BUSINESS_SERVICES_REPLY = (
    "Our Business Center handles document printing, editing and project analysis. "
    "Start a request here: /business-center 🖨️"
)


def attachment_note(name: str, content_type: str) -> str:
    return f"The user has shared a file: {name} ({content_type})"
