from dispatch_sla import create_app
from dispatch_sla.utils.sla_timers import check_timers

app = create_app()

# Ejecutar el barrido SLA una vez desde la terminal
def run_check():
    with app.app_context():
        resultado = check_timers()
        print(f"Timers revisados: {resultado['checked']}, "
              f"warnings: {resultado['alerts']}, breaches: {resultado['breaches']}")

if __name__ == '__main__':
    import sys
    if '--check-timers' in sys.argv:
        run_check()
    else:
        app.run(debug=True, port=5000)
