"""Loading of monthly series and recession indicators from CSV files.

Modules
-------
series_csv — ``date,value[,deseasonalized_value]`` files → ``TimeSeries``;
             ``date,value`` 0/1 files → recession map
"""
