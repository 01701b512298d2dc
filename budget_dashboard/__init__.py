"""Top-level package for the Budget Dashboard.

The primary modules are:

* ``lib.budgets`` – usage classification, aggregation and ranking of budgets
* ``settings_cache`` – single-flight cache for named setting values
* ``records`` – budget and setting records built from backend data
* ``visualization`` – functions that generate Plotly figures
* ``dashboard`` – a Streamlit page that ties everything together

To run the dashboard from the command line you can execute:

```bash
streamlit run budget_dashboard/dashboard.py
```
"""

from .lib.budgets import aggregate, classify, monthly_trend, top_n
from .records import BudgetRecord, Category, Setting
from .settings_cache import SettingValueCache, use_cached_setting

__all__ = [
    "aggregate",
    "classify",
    "monthly_trend",
    "top_n",
    "BudgetRecord",
    "Category",
    "Setting",
    "SettingValueCache",
    "use_cached_setting",
]
