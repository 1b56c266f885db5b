# ClaimGuard Services
#
# Kept import-free: the models import token_format from this package.
