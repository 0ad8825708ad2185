from __future__ import annotations
import argparse
import json
import sys
from pathlib import Path

from app.api.routes.quote import to_domain
from app.api.schemas import QuoteRequest
from app.api.serializers import failure_response, hs_out, quote_to_response
from app.classify.classifier import ProductClassifier
from app.core.domain import ProductDescriptor
from app.core.errors import QuoteError, QuoteValidationError
from app.core.json_safety import try_parse_and_validate
from app.quote.orchestrator import QuoteOrchestrator
from app.utils.logging_setup import get_logger


def _dump(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def cmd_classify(args) -> int:
    clf = ProductClassifier()
    ranked = clf.classify(ProductDescriptor(name=args.name, description=args.description, category=args.category))
    _dump([hs_out(c).model_dump() for c in ranked])
    return 0


def cmd_validate(args) -> int:
    v = ProductClassifier().validate_format(args.code)
    _dump({"code": args.code, "valid": v.valid, "reason": v.reason, "known": v.known})
    return 0 if v.valid else 1


def cmd_quote(args) -> int:
    text = sys.stdin.read() if args.path == "-" else Path(args.path).read_text(encoding="utf-8")
    parsed, problem = try_parse_and_validate(QuoteRequest, text)
    if problem is not None:
        field, message = problem
        _dump(failure_response(QuoteValidationError(message, field=field)).model_dump(mode="json"))
        return 2
    currency = parsed.currency.upper() if parsed.currency else None
    try:
        cart, destination, prefs = to_domain(parsed)
        q = QuoteOrchestrator().build_quote(cart, destination, prefs, currency)
    except QuoteError as e:
        _dump(failure_response(e, currency).model_dump(mode="json"))
        return 2
    _dump(quote_to_response(q).model_dump(mode="json"))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser("quote_cli")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_cls = sub.add_parser("classify", help="Rank HS codes for a product name")
    p_cls.add_argument("name")
    p_cls.add_argument("--description", default=None)
    p_cls.add_argument("--category", default=None)
    p_cls.set_defaults(func=cmd_classify)

    p_val = sub.add_parser("validate", help="Check an HS code's format and chapter")
    p_val.add_argument("code")
    p_val.set_defaults(func=cmd_validate)

    p_q = sub.add_parser("quote", help="Build a quote from a JSON request file ('-' for stdin)")
    p_q.add_argument("path")
    p_q.set_defaults(func=cmd_quote)

    args = parser.parse_args(argv)
    get_logger("app")
    return args.func(args)

if __name__ == "__main__":
    sys.exit(main())
