"""
Type hints that are used throughout
"""

from __future__ import annotations

from typing import Union

import numpy as np
import numpy.typing as npt
import pandas as pd
from typing_extensions import TypeAlias

NP_ARRAY_OF_FLOAT_OR_INT: TypeAlias = Union[
    npt.NDArray[np.floating], npt.NDArray[np.integer]
]
"""
Type alias for an array of numpy float or int (not complex)
"""

LongDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the 'long' [pandas.DataFrame][pd.DataFrame] shape used at our interfaces

For typing purposes, this is just a direct alias of [pandas.DataFrame][pd.DataFrame].

We expect one record per row.
Categorical metadata (model, scenario, region etc.) is held in columns,
alongside a year column and a value column.

```python
   model scenario region variable  unit  year  value
0     ma       sa    AUS      GDP  USD  2020  100.0
1     ma       sa    AUS      GDP  USD  2030  200.0
```
"""

TimeseriesDataFrame: TypeAlias = pd.DataFrame
"""
Type alias for the 'wide' [pandas.DataFrame][pd.DataFrame] shape we use internally

For typing purposes, this is just a direct alias of [pandas.DataFrame][pd.DataFrame].

We expect a collection of timeseries.
These timeseries are defined by the columns, which we expect to be years.
We expect that the index contains metadata about each timeseries
(i.e. the index levels are the group fields).
As a result, the data itself should be numerical only (no strings, no lists, no dicts).

```python
                                   2020   2030
model scenario region variable unit
ma    sa       AUS    GDP      USD  100.0  200.0
```
"""
