# Copyright 2025 DNAi inc.

# Dual-licensed under the DNAi Free License v1.1 and the
# DNAi Commercial License v1.1.
# See the LICENSE files in the project root for details.

"""
Exception classes for jxlmeta

Malformed metadata (bad ICC headers, bad TIFF headers, truncated boxes) is
reported as an absent result by the parsers and never raises. The classes
below cover programmer errors and use of released resources.

Copyright 2025 DNAi inc.
"""


class JxlMetaError(Exception):
    """
    Base exception for all jxlmeta errors.
    
    All jxlmeta exceptions inherit from this class, allowing
    catch-all error handling for any jxlmeta-related errors.
    """
    def __init__(self, message: str = ""):
        """
        Initialize the exception with an optional error message.
        
        Args:
            message: Descriptive error message explaining what went wrong
        """
        self.message = message
        super().__init__(message)


class InvalidEncodingError(JxlMetaError, ValueError):
    """
    Raised when a color encoding is constructed from invalid arguments.
    
    This exception is raised when:
    - Primaries are supplied for a grayscale encoding
    - Primaries are missing for an RGB encoding
    - The color space is unknown or the ICC data is empty
    - A custom white point or gamma is missing its values
    """
    pass


class UnsupportedConversionError(JxlMetaError):
    """
    Raised when a derived color encoding cannot be produced.
    
    For example, forcing a linear transfer function on an ICC-backed
    profile that has no structured equivalent.
    """
    pass


class DisposedResourceError(JxlMetaError):
    """
    Raised when a released profile or decoder session is accessed.
    """
    pass


class ContainerReadError(JxlMetaError):
    """
    Raised when a JPEG XL container or a compressed box cannot be read.
    
    This exception is raised when:
    - Input is neither a JPEG XL container nor a bare codestream
    - A brob box payload cannot be Brotli-decompressed
    """
    pass
