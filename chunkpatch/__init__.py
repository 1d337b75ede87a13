"""chunkpatch - rule-based source patching for host-supplied code chunks."""

__version__ = "0.4.0"

# Part of the cache signature. Bump when rule semantics change without a
# release so that persisted rule-to-unit associations are discarded.
ENGINE_VERSION = __version__
