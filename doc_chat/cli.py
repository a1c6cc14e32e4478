#!/usr/bin/env python3
"""Command-line interface for doc_chat.

Usage:
    doc-chat ingest report.pdf --user alice --db doc_chat.duckdb
    doc-chat documents --user alice
    doc-chat ask <document-id> "What technologies are used?" --user alice
    doc-chat history <document-id> --user alice
    doc-chat histories --user alice
    doc-chat delete <document-id> --user alice
    doc-chat classify "can you summarize and list the authors"
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from .builder import DocChatBuilder, DocChatConfig, load_config
from .core.classifier import QueryClassifier
from .errors import DocChatError


def setup_logging(verbose: bool = False) -> None:
    """Send log records to stderr so stdout stays clean for answers."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(asctime)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
    root = logging.getLogger("doc_chat")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)


def format_time(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def truncate(text: str, max_len: int = 100) -> str:
    """Truncate text and add ellipsis."""
    text = text.replace('\n', ' ')
    if len(text) > max_len:
        return text[:max_len-3] + "..."
    return text


def build_chat(args):
    config = load_config(args.config) if args.config else DocChatConfig()
    if args.db:
        config.db_path = args.db
    if args.provider:
        config.provider = args.provider
    return DocChatBuilder(config).build()


def cmd_ingest(args):
    chat = build_chat(args)
    doc = chat.ingest_file(args.path, owner_id=args.user, name=args.name, document_id=args.document_id)
    if args.json:
        print(json.dumps({"id": doc.id, "name": doc.name, "chunks": len(doc.chunks)}))
    else:
        print(f"Ingested {doc.name}: {len(doc.chunks)} chunks")
        print(f"Document ID: {doc.id}")


def cmd_documents(args):
    chat = build_chat(args)
    documents = chat.list_documents(args.user)
    if args.json:
        print(json.dumps([
            {
                "id": d.id,
                "name": d.name,
                "uploaded_at": d.uploaded_at,
                "characters": len(d.text),
                "chunks": chat.documents.count(d.id),
            }
            for d in documents
        ], ensure_ascii=False))
        return

    if not documents:
        print("No documents.")
    for d in documents:
        print(f"{d.id}  {format_time(d.uploaded_at)}  {chat.documents.count(d.id):3d} chunks  {d.name}")


def cmd_ask(args):
    chat = build_chat(args)
    result = chat.ask(args.user, args.document_id, args.message, timeout=args.timeout)
    if args.json:
        print(json.dumps({
            "response": result.response,
            "source": result.source,
            "intent": result.intent.value if result.intent else None,
            "relevant_chunks": [
                {"id": sc.chunk.index, "text": truncate(sc.chunk.text, 150), "score": sc.score}
                for sc in result.relevant_chunks
            ],
            "session_id": result.session_id,
        }, ensure_ascii=False))
        return

    print(result.response)
    if args.verbose:
        print("-" * 80)
        print(f"source={result.source} intent={result.intent.value if result.intent else '-'}")
        for i, sc in enumerate(result.relevant_chunks, 1):
            print(f"[{i}] chunk {sc.chunk.index} score={sc.score:.4f} {truncate(sc.chunk.text, 60)}")


def cmd_history(args):
    chat = build_chat(args)
    session = chat.history(args.user, args.document_id)
    turns = session.turns if session else []
    if args.json:
        print(json.dumps({
            "session_id": session.id if session else None,
            "title": session.title if session else "New Chat",
            "messages": [
                {"role": t.role, "content": t.content, "timestamp": t.timestamp, "source": t.source}
                for t in turns
            ],
        }, ensure_ascii=False))
        return

    if not turns:
        print("No messages yet.")
        return
    print(session.title)
    for turn in turns:
        tag = f" ({turn.source})" if turn.source else ""
        print(f"[{format_time(turn.timestamp)}] {turn.role}{tag}: {turn.content}")


def cmd_histories(args):
    chat = build_chat(args)
    sessions = chat.list_sessions(args.user)
    if args.json:
        print(json.dumps([
            {
                "session_id": s.id,
                "document_id": s.document_id,
                "title": s.title,
                "last_active": s.last_active,
                "message_count": len(s.turns),
                "last_message": truncate(s.turns[-1].content) if s.turns else "",
            }
            for s in sessions
        ], ensure_ascii=False))
        return

    if not sessions:
        print("No chat histories.")
    for s in sessions:
        print(f"{s.document_id}  {format_time(s.last_active)}  {len(s.turns):3d} msgs  {s.title}")


def cmd_delete(args):
    chat = build_chat(args)
    if args.document:
        deleted = chat.delete_document(args.document_id, args.user)
        what = "Document"
    else:
        deleted = chat.delete_history(args.user, args.document_id)
        what = "Chat history"
    if not deleted:
        print(f"{what} not found", file=sys.stderr)
        sys.exit(1)
    print(f"{what} deleted successfully")


def cmd_classify(args):
    classifier = QueryClassifier()
    intent = classifier.classify(args.message)
    about_document = classifier.is_document_question(args.message)
    if args.json:
        print(json.dumps({"intent": intent.value, "about_document": about_document}))
    else:
        print(f"{intent.value} (about document: {about_document})")


def main():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="Path to YAML config file")
    common.add_argument("--db", default=None, help="DuckDB database path")
    common.add_argument("--provider", choices=["api", "dummy"], default=None)
    common.add_argument("--json", action="store_true", help="Print JSON output")
    common.add_argument("-v", "--verbose", action="store_true")

    p = argparse.ArgumentParser(description="Chat with a document (hash-embedding RAG)")
    sub = p.add_subparsers(dest="cmd", required=True)

    pi = sub.add_parser("ingest", parents=[common], help="Extract, chunk and store a document")
    pi.add_argument("path", help="PDF, .txt or .md file")
    pi.add_argument("--user", required=True)
    pi.add_argument("--name", default=None, help="Display name (defaults to file name)")
    pi.add_argument("--document-id", default=None)
    pi.set_defaults(func=cmd_ingest)

    pu = sub.add_parser("documents", parents=[common], help="List a user's documents")
    pu.add_argument("--user", required=True)
    pu.set_defaults(func=cmd_documents)

    pa = sub.add_parser("ask", parents=[common], help="Ask a question about a document")
    pa.add_argument("document_id")
    pa.add_argument("message")
    pa.add_argument("--user", required=True)
    pa.add_argument("--timeout", type=float, default=None, help="Generation timeout in seconds")
    pa.set_defaults(func=cmd_ask)

    ph = sub.add_parser("history", parents=[common], help="Show the chat history for a document")
    ph.add_argument("document_id")
    ph.add_argument("--user", required=True)
    ph.set_defaults(func=cmd_history)

    pl = sub.add_parser("histories", parents=[common], help="List all chat histories for a user")
    pl.add_argument("--user", required=True)
    pl.set_defaults(func=cmd_histories)

    pd = sub.add_parser("delete", parents=[common], help="Delete a chat history (or the document)")
    pd.add_argument("document_id")
    pd.add_argument("--user", required=True)
    pd.add_argument("--document", action="store_true", help="Delete the document and all its chats")
    pd.set_defaults(func=cmd_delete)

    pc = sub.add_parser("classify", parents=[common], help="Show the intent of a message")
    pc.add_argument("message")
    pc.set_defaults(func=cmd_classify)

    args = p.parse_args()
    setup_logging(args.verbose)

    try:
        args.func(args)
    except (DocChatError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
