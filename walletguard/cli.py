#!/usr/bin/env python3
"""
walletguard - WalletGuard operator CLI

One-off security checks, token handling and key generation.

Commands:
    address         Validate an address for a chain
    transaction     Validate a transfer (addresses, recipients, amount ceiling)
    signature       Verify a signed message
    phishing        Check a URL and/or addresses for phishing risk
    contract        Smart contract risk placeholder check
    token           Issue or verify a security token
    keygen          Generate an ephemeral wallet
    config          Show the resolved configuration

Usage:
    walletguard address 0x52908400098527886E0F7030069857D2E4169EE7 --chain ethereum
    walletguard phishing --url https://metamask-connect-airdrop.free-bonus.com
    walletguard transaction 0xAAA... 0xBBB... 100.50 --chain ethereum --max-amount 100.00
    walletguard token issue '{"user": "alice"}' --ttl 60000
    walletguard token verify <token>
    walletguard keygen --chain solana --show-private-key

Exit codes: 0 check passed, 1 check failed, 2 configuration error.

Environment:
    WALLETGUARD_CONFIG            Path to configuration file
    WALLETGUARD_SECURITY_SECRET   Token signing secret
    WALLETGUARD_THREAT_FEED       Threat feed file
"""

import argparse
import json
import os
import sys

from .auth.security_token import SecurityTokenCodec
from .chains import ChainType
from .config.settings import load_config
from .errors import ConfigurationError
from .logging_config import FeatureArea, setup_logging
from .security.models import CheckResult
from .security.normalized_set import create_blacklist, create_phishing_domains
from .security.risk_engine import RiskAssessmentEngine
from .security.threat_feed import SAMPLE_THREAT_FEED, ThreatFeedLoader
from .wallet.factory import WalletAdapterFactory

CHAIN_CHOICES = [c.value for c in ChainType]


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, sort_keys=True))


def _report(result: CheckResult) -> int:
    _print_json(result.to_dict())
    return 0 if result.success else 1


def _build_engine(args, config) -> RiskAssessmentEngine:
    blacklist = create_blacklist()
    phishing_domains = create_phishing_domains()
    loader = ThreatFeedLoader(
        require_signature=config.require_signed_feed,
        trusted_public_keys=config.trusted_feed_keys or None,
    )
    if args.sample_feed:
        loader.apply(loader.parse(SAMPLE_THREAT_FEED), blacklist, phishing_domains)
    feed_path = args.feed or config.threat_feed_path
    if feed_path:
        loader.load_into(feed_path, blacklist, phishing_domains, replace=not args.sample_feed)
    return RiskAssessmentEngine(blacklist, phishing_domains)


def cmd_address(args, config):
    """Validate an address."""
    engine = _build_engine(args, config)
    return _report(engine.validate_address(args.address, args.chain))


def cmd_transaction(args, config):
    """Validate a transfer."""
    engine = _build_engine(args, config)
    return _report(engine.validate_transaction(
        args.from_address,
        args.to_address,
        args.amount,
        args.chain,
        max_amount=args.max_amount,
        allowed_recipients=args.allowed_recipient,
    ))


def cmd_signature(args, config):
    """Verify a signed message."""
    engine = _build_engine(args, config)
    return _report(engine.verify_signature(args.message, args.signature, args.signer, args.chain))


def cmd_phishing(args, config):
    """Check a URL and/or addresses for phishing risk."""
    if not (args.url or args.address or args.contract):
        print("Nothing to check: give --url, --address or --contract", file=sys.stderr)
        return 2
    engine = _build_engine(args, config)
    return _report(engine.detect_phishing(
        url=args.url, address=args.address, contract_address=args.contract,
    ))


def cmd_contract(args, config):
    """Smart contract risk placeholder check."""
    engine = _build_engine(args, config)
    return _report(engine.assess_smart_contract_risk(args.contract_address, args.chain))


def cmd_token(args, config):
    """Issue or verify a security token."""
    codec = SecurityTokenCodec(config.require_secret(), default_ttl_ms=config.token_ttl_ms)

    if args.token_cmd == 'issue':
        try:
            data = json.loads(args.data)
        except ValueError:
            # Plain strings are accepted as-is
            data = args.data
        print(codec.issue(data, args.ttl))
        return 0

    if args.token_cmd == 'verify':
        verification = codec.verify(args.token)
        _print_json({
            'valid': verification.valid,
            'data': verification.data,
            'reason': verification.reason,
        })
        return 0 if verification.valid else 1

    print("Usage: walletguard token {issue,verify} ...", file=sys.stderr)
    return 2


def cmd_keygen(args, config):
    """Generate an ephemeral wallet."""
    factory = WalletAdapterFactory(endpoints=config.rpc_endpoints)
    adapter, private_key = factory.generate_ephemeral(args.chain)
    output = {
        'chain': adapter.chain_type.value,
        'address': adapter.get_address(),
    }
    if args.show_private_key:
        print("WARNING: the private key below is shown once and not stored.", file=sys.stderr)
        output['private_key'] = private_key
    else:
        print("Private key discarded; pass --show-private-key to export it.", file=sys.stderr)
    del private_key
    _print_json(output)
    return 0


def cmd_config(args, config):
    """Show the resolved configuration (secret masked)."""
    _print_json(config.to_dict())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='walletguard',
        description='WalletGuard security core CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('--config', help='Configuration file (JSON or YAML)')
    parser.add_argument('--feed', help='Threat feed file to load')
    parser.add_argument('--sample-feed', action='store_true',
                        help='Load the built-in sample threat feed')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')
    parser.add_argument('--json-logs', action='store_true', help='JSON log output')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    address_parser = subparsers.add_parser('address', help='Validate an address')
    address_parser.add_argument('address')
    address_parser.add_argument('--chain', '-c', choices=CHAIN_CHOICES, required=True)
    address_parser.set_defaults(func=cmd_address)

    tx_parser = subparsers.add_parser('transaction', help='Validate a transfer')
    tx_parser.add_argument('from_address')
    tx_parser.add_argument('to_address')
    tx_parser.add_argument('amount', help='Decimal amount, e.g. 100.50')
    tx_parser.add_argument('--chain', '-c', choices=CHAIN_CHOICES, required=True)
    tx_parser.add_argument('--max-amount', help='Decimal ceiling')
    tx_parser.add_argument('--allowed-recipient', action='append',
                           help='Allowed recipient (repeatable)')
    tx_parser.set_defaults(func=cmd_transaction)

    sig_parser = subparsers.add_parser('signature', help='Verify a signed message')
    sig_parser.add_argument('message')
    sig_parser.add_argument('signature')
    sig_parser.add_argument('signer', help='Address (EVM) or base58 public key (Solana)')
    sig_parser.add_argument('--chain', '-c', choices=CHAIN_CHOICES, required=True)
    sig_parser.set_defaults(func=cmd_signature)

    phishing_parser = subparsers.add_parser('phishing', help='Check for phishing risk')
    phishing_parser.add_argument('--url', '-u')
    phishing_parser.add_argument('--address', '-a')
    phishing_parser.add_argument('--contract')
    phishing_parser.set_defaults(func=cmd_phishing)

    contract_parser = subparsers.add_parser('contract', help='Smart contract risk check')
    contract_parser.add_argument('contract_address')
    contract_parser.add_argument('--chain', '-c', choices=CHAIN_CHOICES, required=True)
    contract_parser.set_defaults(func=cmd_contract)

    token_parser = subparsers.add_parser('token', help='Issue or verify a security token')
    token_sub = token_parser.add_subparsers(dest='token_cmd')
    issue_parser = token_sub.add_parser('issue', help='Issue a token')
    issue_parser.add_argument('data', help='JSON payload (plain strings accepted)')
    issue_parser.add_argument('--ttl', type=int, help='Lifetime in milliseconds')
    verify_parser = token_sub.add_parser('verify', help='Verify a token')
    verify_parser.add_argument('token')
    token_parser.set_defaults(func=cmd_token)

    keygen_parser = subparsers.add_parser('keygen', help='Generate an ephemeral wallet')
    keygen_parser.add_argument('--chain', '-c', choices=CHAIN_CHOICES, required=True)
    keygen_parser.add_argument('--show-private-key', action='store_true',
                               help='Print the raw private key (shown once, never stored)')
    keygen_parser.set_defaults(func=cmd_keygen)

    config_parser = subparsers.add_parser('config', help='Show resolved configuration')
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config or os.environ.get('WALLETGUARD_CONFIG'))
    except (ConfigurationError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    setup_logging(
        verbose=args.verbose or config.verbose,
        log_file=config.log_file,
        json_format=args.json_logs or config.log_json,
        features=set(FeatureArea) - config.log_quiet,
    )

    try:
        return args.func(args, config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
