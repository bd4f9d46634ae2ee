"""
Chain - On-chain interaction layer for the DataUnison SDK.

Provides an async JSON-RPC provider, ABI tables, a private-key signer and
contract bindings for the Registrar, Summary and Interaction contracts.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
