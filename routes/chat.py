"""
Chat and product search endpoints as a Flask Blueprint.
"""

import time

from flask import Blueprint, request, jsonify

from app_config import SYSTEM_PROMPT
from models import Message, Role
from conversation_store import ConversationStore
from llm_client import LLMClient, LLMClientError
from product_catalog import get_product_lookup
from response_parser import enhance, blocks_to_dicts
from chat_logger import get_logger, sanitize_log_string

logger = get_logger("concierge")

chat_bp = Blueprint("chat", __name__)

conversation_store = ConversationStore()
llm_client = LLMClient()
product_lookup = get_product_lookup()

TOP_PRODUCTS = 3


def _not_found(conversation_id: str):
    logger.warning(f"Conversation not found | conversation={conversation_id}")
    return jsonify({"success": False, "error": "Conversation not found"}), 404


@chat_bp.route("/api/chat", methods=["POST"])
def chat():
    """
    Main chat endpoint.

    Request:
        POST /api/chat
        {"message": "I need a new lamp", "conversationId": "..."}   # conversationId optional

    Response:
        {
            "success": true,
            "conversationId": "...",
            "response": [{"type": "text", "text": "..."}, {"type": "product", ...}]
        }
    """
    start_time = time.time()

    body = request.get_json(silent=True) or {}
    message = body.get("message")
    conversation_id = body.get("conversationId")

    if not isinstance(message, str) or not message.strip():
        logger.warning("POST /api/chat | Missing message")
        return jsonify({"success": False, "error": "Message is required"}), 400
    message = message.strip()

    truncated_msg = message[:100] + "..." if len(message) > 100 else message
    logger.info(
        f'POST /api/chat | conversation={conversation_id or "new"} | '
        f'message="{sanitize_log_string(truncated_msg)}"'
    )

    user_message = Message(role=Role.USER, content=message)
    if conversation_id:
        if not conversation_store.append(conversation_id, user_message):
            return _not_found(conversation_id)
    else:
        conversation_id = conversation_store.create(Message(role=Role.SYSTEM, content=SYSTEM_PROMPT))
        conversation_store.append(conversation_id, user_message)

    history = conversation_store.get_history(conversation_id)
    if history is None:
        # expired between the append and the read
        return _not_found(conversation_id)

    try:
        reply = llm_client.generate(history)
    except LLMClientError as e:
        logger.error(f"POST /api/chat | conversation={conversation_id} | model error={e}")
        return jsonify({
            "success": False,
            "error": "Failed to generate a response",
            "conversationId": conversation_id,
        }), 502

    conversation_store.append(conversation_id, Message(role=Role.ASSISTANT, content=reply))
    blocks = enhance(reply, product_lookup)

    logger.info(
        f"POST /api/chat | conversation={conversation_id} | blocks={len(blocks)} | "
        f"response_time_ms={int((time.time() - start_time) * 1000)}"
    )
    return jsonify({
        "success": True,
        "conversationId": conversation_id,
        "response": blocks_to_dicts(blocks),
    }), 200


@chat_bp.route("/api/conversations/<conversation_id>", methods=["GET"])
def get_conversation(conversation_id):
    """Get conversation history."""
    conversation = conversation_store.get(conversation_id)
    if conversation is None:
        return _not_found(conversation_id)
    return jsonify({"success": True, "conversation": conversation.to_dict()})


def _search_products(query: str):
    """Top product records for a query, or None when no lookup is configured."""
    if product_lookup is None:
        return None
    return [record.to_dict() for record in product_lookup.search(query)[:TOP_PRODUCTS]]


def _search_unavailable(path: str):
    logger.error(f"POST {path} | no product lookup configured")
    return jsonify({"success": False, "error": "Product search is unavailable"}), 503


@chat_bp.route("/api/search", methods=["POST"])
def search_products():
    """
    Product search.

    Request:
        POST /api/search
        {"query": "linen bedding"}

    Response:
        {"success": true, "query": "linen bedding", "products": [{"name": ..., "price": ...}]}
    """
    body = request.get_json(silent=True) or {}
    query = body.get("query")
    if not isinstance(query, str) or not query.strip():
        logger.warning("POST /api/search | Missing query")
        return jsonify({"success": False, "error": "Search query is required"}), 400
    query = query.strip()

    products = _search_products(query)
    if products is None:
        return _search_unavailable("/api/search")

    logger.info(
        f'POST /api/search | query="{sanitize_log_string(query[:100])}" | results={len(products)}'
    )
    return jsonify({"success": True, "query": query, "products": products}), 200


@chat_bp.route("/api/recommendations", methods=["POST"])
def get_recommendations():
    """
    Recommendations for a category, narrowed by optional free-text preferences.

    Request:
        POST /api/recommendations
        {"category": "lighting", "preferences": "brass, warm light"}   # preferences optional
    """
    body = request.get_json(silent=True) or {}
    category = body.get("category")
    preferences = body.get("preferences") or ""
    if not isinstance(category, str) or not category.strip():
        logger.warning("POST /api/recommendations | Missing category")
        return jsonify({"success": False, "error": "Category is required"}), 400
    if not isinstance(preferences, str):
        preferences = ""

    search_query = f"{category.strip()} {preferences.strip()}".strip()
    products = _search_products(search_query)
    if products is None:
        return _search_unavailable("/api/recommendations")

    logger.info(
        f'POST /api/recommendations | query="{sanitize_log_string(search_query[:100])}" | '
        f"results={len(products)}"
    )
    return jsonify({
        "success": True,
        "category": category.strip(),
        "searchQuery": search_query,
        "recommendations": products,
    }), 200
