# ==============================================================================
# WSGI Entry Point
# ==============================================================================
# Punto de entrada para servidores WSGI.
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── bookstore/       <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
#
# La carpeta de datos se elige con BOOKSTORE_DATA_DIR.
# ==============================================================================

from bookstore.main import create_app

app = create_app()

# ==============================================================================
# PUNTO DE ENTRADA
# ==============================================================================
# Para desarrollo local:
#   python wsgi.py
# ==============================================================================

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
