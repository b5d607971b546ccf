"""Legal texts installed the first time the legal settings row is read."""

PRIVACY_POLICY = """<h2>Política de Privacidad de Farmacia Fátima Díaz Guillén</h2>
<p>En Farmacia Fátima Díaz Guillén valoramos y respetamos su privacidad. Esta política describe cómo recopilamos, utilizamos y protegemos la información personal que nos proporciona.</p>
<h3>Información que recopilamos</h3>
<p>Nombre, dirección, correo electrónico, teléfono y, cuando es necesario, información médica relevante para prestarle nuestros servicios farmacéuticos y médicos.</p>
<h3>Uso de la información</h3>
<ul>
<li>Gestionar sus pedidos de medicamentos</li>
<li>Programar y administrar sus citas médicas</li>
<li>Informarle sobre productos y servicios de su interés</li>
</ul>
<h3>Protección de datos</h3>
<p>Aplicamos medidas técnicas y organizativas para proteger su información frente a accesos no autorizados, alteración o divulgación.</p>
<h3>Contacto</h3>
<p>Para cualquier consulta escríbanos a <a href="mailto:info@farmaciafatimadiaz.com">info@farmaciafatimadiaz.com</a></p>"""

COOKIES_POLICY = """<h2>Política de Cookies de Farmacia Fátima Díaz Guillén</h2>
<p>Esta política explica qué son las cookies, cómo las utilizamos y qué opciones tiene respecto a ellas.</p>
<h3>Tipos de cookies que utilizamos</h3>
<ul>
<li><strong>Esenciales:</strong> necesarias para el funcionamiento básico del sitio.</li>
<li><strong>De funcionalidad:</strong> recuerdan sus preferencias.</li>
<li><strong>Analíticas:</strong> nos ayudan a entender cómo se usa el sitio.</li>
</ul>
<h3>Control de cookies</h3>
<p>Puede gestionar las cookies desde la configuración de su navegador; deshabilitarlas puede afectar al funcionamiento del sitio.</p>
<h3>Contacto</h3>
<p>Para cualquier consulta escríbanos a <a href="mailto:info@farmaciafatimadiaz.com">info@farmaciafatimadiaz.com</a></p>"""

TERMS_AND_CONDITIONS = """<h2>Términos y Condiciones de Farmacia Fátima Díaz Guillén</h2>
<p>Al utilizar nuestro sitio web y servicios usted acepta estos términos y condiciones.</p>
<h3>Servicios ofrecidos</h3>
<p>Servicios farmacéuticos y de atención médica básica: venta de medicamentos, citas médicas y asesoramiento farmacéutico.</p>
<h3>Responsabilidad médica</h3>
<p>La información del sitio tiene fines informativos y no sustituye el consejo de un profesional de la salud.</p>
<h3>Modificaciones</h3>
<p>Podemos modificar estos términos en cualquier momento; los cambios se aplican desde su publicación.</p>
<h3>Contacto</h3>
<p>Para cualquier consulta escríbanos a <a href="mailto:info@farmaciafatimadiaz.com">info@farmaciafatimadiaz.com</a></p>"""
