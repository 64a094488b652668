"""TokenVault Meta information.
   TokenVault replaces payment-card data with opaque tokens, keeping the
   card encrypted under a centrally managed KMS key.
"""
__title__ = 'tokenvault'
__description__ = (
   'TokenVault replaces payment-card data with opaque tokens, '
   'encrypted under a KMS-managed key.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/tokenvault'
