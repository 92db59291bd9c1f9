"""
MondayEase - multi-tenant Monday.com dashboards

Organizations connect Monday.com, bind boards, and share filtered views
with team members and external clients.
"""

__version__ = "0.1.0"
