"""LeadForge: business lead enrichment and ICP scoring."""
