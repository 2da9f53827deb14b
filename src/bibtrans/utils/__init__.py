"""HTTP helpers shared by attachments, web capture and failure reports."""
