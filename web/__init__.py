# Web dashboard
