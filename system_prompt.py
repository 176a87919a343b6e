CATALOG_PROMPT = """\
CRITICAL INSTRUCTION: Do not recreate, redraw, or reinterpret the scarf. You must isolate the EXACT pixels of the scarf from the uploaded image and place them into the new environment.

Isolate and relight the exact uploaded product. Keep the scarf 100% unchanged — do not alter the design, colors, proportions, folds, or fabric texture in any way.

Remove the original background completely.

Place the scarf into a high-end fashion studio setting with a smooth warm beige-grey seamless backdrop, elegant and minimal.

Lighting setup:
Use soft diffused key light from the front-left to illuminate the scarf evenly.
Add a gentle secondary fill light to soften harsh shadows while maintaining depth.
Introduce a subtle rim light from the back-right to create elegant edge separation and dimension.
Enhance natural highlights along the silk folds to emphasize smoothness and fluidity.
Increase micro-contrast slightly to make the fabric texture more tactile and premium.
Apply a very soft luminous glow to the brightest silk areas (not glossy, not reflective, not overexposed).

Maintain accurate original colors — do not oversaturate.
Create a soft natural shadow beneath the product for grounding.
The silk should appear soft, airy, fluid, and luxurious — visually touchable.

Luxury fashion catalog photography, refined, elegant, high-end brand aesthetic, no props, no text, no watermark."""
