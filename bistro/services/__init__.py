"""
                        Services Module

External collaborators behind the hybrid architecture pattern.
Each service has Mock (development) and Real (production) implementations.

Services:
    - backend: Supabase auth + table store
    - enhancer: Gemini menu copywriting
    - share: WhatsApp / SMS receipt hand-off links
    - history_export: Lock-protected Excel export of the sales log
"""

from bistro.services.history_export import HistoryExporter

__all__ = ["HistoryExporter"]
