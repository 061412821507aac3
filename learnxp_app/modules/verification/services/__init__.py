from .verifier import VerifierService

__all__ = ['VerifierService']
