"""Email and reminder dispatch services."""
