"""
API server package — HTTP interface over the energy analytics pipeline.

Serves cached or freshly computed analytics per contract, the cron batch
trigger, monitored-contract management and admin status views.
"""
