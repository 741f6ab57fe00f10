"""Petstore API.

The petstore API serves pets and their owners.

+swagger:meta
Schemes: http, https
Host: petstore.example.com
BasePath: /api/v1
Version: 1.0.2
License: MIT http://opensource.org/licenses/MIT
Contact: John Doe <john.doe@example.com> http://john.doe.example.com

Consumes:
application/json

Produces:
application/json
"""
