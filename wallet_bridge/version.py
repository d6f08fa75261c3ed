"""Wallet Bridge Meta information.
   Wallet Bridge encrypts backend messages, holds wallet keys in memory
   and signs digests for a wallet front-end.
"""
__title__ = 'wallet_bridge'
__description__ = (
   'Wallet Bridge encrypts backend messages, holds wallet keys in memory '
   'and signs digests for a wallet front-end.'
)
__version__ = '0.1.0'
__license__ = 'Apache-2.0'
